"""Exception handler for structured error responses."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from ..exceptions import OpenDeskError

logger = logging.getLogger(__name__)


async def opendesk_exception_handler(request: Request, exc: OpenDeskError) -> JSONResponse:
    """Convert an OpenDeskError into its JSON body and status code.

    Client errors are logged at WARNING, server-side failures at ERROR.
    """
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        f"OpenDeskError: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code,
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )
