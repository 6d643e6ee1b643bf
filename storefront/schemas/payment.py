"""
Typed request/response pairs for the PhonePe pay and status endpoints
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, Optional


class GatewayModel(BaseModel):
    """Gateway payloads use camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaymentInstrument(GatewayModel):
    type: str = "PAY_PAGE"


class PayRequest(GatewayModel):
    """Payload signed and sent to /pg/v1/pay"""
    merchant_id: str
    merchant_transaction_id: str
    merchant_user_id: str
    amount: int = Field(..., gt=0, description="Amount in paise")
    redirect_url: str
    redirect_mode: str = "POST"
    callback_url: str
    mobile_number: Optional[str] = None
    payment_instrument: PaymentInstrument = Field(default_factory=PaymentInstrument)


class RedirectInfo(GatewayModel):
    url: str
    method: Optional[str] = None


class InstrumentResponse(GatewayModel):
    type: Optional[str] = None
    redirect_info: Optional[RedirectInfo] = None


class PayResponseData(GatewayModel):
    merchant_id: Optional[str] = None
    merchant_transaction_id: Optional[str] = None
    instrument_response: Optional[InstrumentResponse] = None


class PayResponse(GatewayModel):
    """Response body of /pg/v1/pay"""
    success: bool = False
    code: Optional[str] = None
    message: Optional[str] = None
    data: Optional[PayResponseData] = None

    @property
    def redirect_url(self) -> Optional[str]:
        if self.data and self.data.instrument_response and self.data.instrument_response.redirect_info:
            return self.data.instrument_response.redirect_info.url
        return None


class PaymentNotificationData(GatewayModel):
    merchant_id: Optional[str] = None
    merchant_transaction_id: str
    transaction_id: Optional[str] = None
    amount: Optional[int] = None
    state: Optional[str] = None
    response_code: Optional[str] = None


class PaymentNotification(GatewayModel):
    """Decoded callback / status payload"""
    success: bool = False
    code: Optional[str] = None
    message: Optional[str] = None
    data: PaymentNotificationData


class InitiationResult(BaseModel):
    """Outcome of a pay request"""
    success: bool
    message: str
    redirect_url: Optional[str] = None
    transaction_id: Optional[str] = None


class StatusCheckResult(BaseModel):
    """Outcome of a status request; ``raw`` is the provider body as-is"""
    success: bool
    message: str
    error: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None
