"""
Pricing endpoint
"""
from fastapi import APIRouter, Depends

from storefront.api.orders import get_caller_location
from storefront.schemas.pricing import CallerLocation, PriceQuote
from storefront.services.pricing import PricingResolver

router = APIRouter(prefix="/pricing", tags=["pricing"])


def get_pricing_resolver() -> PricingResolver:
    """Dependency to get PricingResolver instance"""
    return PricingResolver()


@router.get("", response_model=PriceQuote, summary="Get prices")
async def get_prices(
    location: CallerLocation = Depends(get_caller_location),
    resolver: PricingResolver = Depends(get_pricing_resolver)
):
    """Current prices per variant for the caller's location"""
    return await resolver.resolve(location)
