"""Translate dropshipping faults into HTTP error envelopes."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from dropship_api.domain.dropshipping.errors import (
    DropshipErrorCode,
    DropshippingError,
    ProviderUnavailableError,
)

ERROR_STATUS_CODES: dict[DropshipErrorCode, int] = {
    DropshipErrorCode.PROVIDER_DISABLED: status.HTTP_409_CONFLICT,
    DropshipErrorCode.NOT_IMPLEMENTED: status.HTTP_501_NOT_IMPLEMENTED,
    DropshipErrorCode.PROVIDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    DropshipErrorCode.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    DropshipErrorCode.PRODUCT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    DropshipErrorCode.VENDOR_REJECTED: 422,
    DropshipErrorCode.VENDOR_ERROR: status.HTTP_502_BAD_GATEWAY,
    DropshipErrorCode.PROVIDER_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    DropshipErrorCode.INVALID_ORDER: status.HTTP_400_BAD_REQUEST,
}


def error_response(
    code: DropshipErrorCode,
    message: str,
    *,
    provider: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS_CODES[code],
        content={"error": {"code": code.value, "message": message, "provider": provider}},
        headers=headers,
    )


async def _handle_dropshipping_error(request: Request, exc: DropshippingError) -> JSONResponse:
    status_code = ERROR_STATUS_CODES.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    log = logger.bind(code=exc.code.value, provider=exc.provider, path=request.url.path)
    if status_code >= 500:
        log.warning("Dropshipping request failed", error=exc.message)
    else:
        log.info("Dropshipping request rejected", error=exc.message)

    headers = None
    if isinstance(exc, ProviderUnavailableError):
        headers = {"Retry-After": str(max(int(exc.retry_after_seconds), 1))}
    return error_response(exc.code, exc.message, provider=exc.provider, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DropshippingError, _handle_dropshipping_error)  # type: ignore[arg-type]


__all__ = ["ERROR_STATUS_CODES", "error_response", "register_exception_handlers"]
