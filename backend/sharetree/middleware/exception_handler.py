"""Exception handler middleware for structured error responses."""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from ..exceptions import ShareTreeException

logger = logging.getLogger(__name__)


async def sharetree_exception_handler(request: Request, exc: ShareTreeException) -> JSONResponse:
    """
    Convert a ShareTreeException into the standard JSON error body.

    Client errors are logged at INFO, server errors at ERROR.

    Args:
        request: FastAPI request object
        exc: ShareTreeException instance

    Returns:
        JSONResponse with error, message and details
    """
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"ShareTreeException: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
