"""
Map delegation errors to HTTP responses.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from delegation.errors import (
    AlreadyExistsError,
    DelegationError,
    InvalidStatusError,
    NotFoundError,
    ServiceUnsupportedError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AlreadyExistsError, status.HTTP_409_CONFLICT),
    (InvalidStatusError, status.HTTP_400_BAD_REQUEST),
    (ServiceUnsupportedError, status.HTTP_400_BAD_REQUEST),
)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error → status code mapping to ``app``."""

    @app.exception_handler(DelegationError)
    async def delegation_error(request: Request, exc: DelegationError) -> JSONResponse:
        for error_cls, status_code in _STATUS_CODES:
            if isinstance(exc, error_cls):
                return JSONResponse({"error": str(exc)}, status_code=status_code)

        # Internal failures keep their detail in the log only.
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
        return JSONResponse(
            {"error": "internal error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
