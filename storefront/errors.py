"""
Storefront exceptions
"""


class StorefrontError(Exception):
    """Base exception for storefront errors"""
    error_code = "error"


class InvalidInputError(StorefrontError):
    """Malformed input; never persisted"""
    error_code = "validation"


class NotFoundError(StorefrontError):
    """Referenced order, discount or pending payment is absent"""
    error_code = "not_found"


class AlreadyExistsError(StorefrontError):
    """Record with the same key already exists"""
    error_code = "already_exists"


class OutOfStockError(StorefrontError):
    """Insufficient stock"""
    error_code = "out_of_stock"


class ConfigurationError(StorefrontError):
    """Required configuration is missing"""
    error_code = "configuration"


class ExternalServiceError(StorefrontError):
    """External service is unreachable or returned a failure"""
    error_code = "external_service"


class PaymentGatewayError(ExternalServiceError):
    """Payment gateway call failed"""
    error_code = "payment_gateway"
