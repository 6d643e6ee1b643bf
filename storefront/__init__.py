"""
Storefront Service
"""
