from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from .exceptions import LMSCoreException

logger = logging.getLogger(__name__)

async def lms_exception_handler(request: Request, exc: LMSCoreException):
    """Handle LMS core exceptions"""
    if exc.status_code >= 500:
        logger.error("LMS core error: %s - Path: %s", exc.detail, request.url.path)
    else:
        logger.info("LMS core rejection (%s): %s - Path: %s", exc.status_code, exc.detail, request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "type": exc.__class__.__name__},
        headers=exc.headers,
    )

async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error("Unexpected error: %s - Path: %s", exc, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "type": "InternalError"}
    )

def register_exception_handlers(app: FastAPI) -> None:
    """Attach the core's handlers to a host application."""
    app.add_exception_handler(LMSCoreException, lms_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
