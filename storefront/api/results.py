"""
Mapping of service results to HTTP responses
"""
from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel


ERROR_STATUS = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "invalid_signature": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "already_exists": status.HTTP_409_CONFLICT,
    "out_of_stock": status.HTTP_409_CONFLICT,
    "amount_mismatch": status.HTTP_409_CONFLICT,
    "payment_failed": status.HTTP_402_PAYMENT_REQUIRED,
    "payment_pending": status.HTTP_202_ACCEPTED,
    "payment_gateway": status.HTTP_502_BAD_GATEWAY,
}


def result_response(result: BaseModel, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Render a ``{success, message, error, ...}`` result with a matching status code"""
    if result.success:
        status_code = success_status
    else:
        status_code = ERROR_STATUS.get(result.error, status.HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))
