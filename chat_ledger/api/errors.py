"""
Translate service errors into HTTP responses.

Routers catch AppError, roll the session back, and re-raise
through http_error() so the status code comes from the error
itself.
"""

import logging

from fastapi import HTTPException

from chat_ledger.errors import AppError, StorageError

logger = logging.getLogger(__name__)


def http_error(error: AppError) -> HTTPException:
    if isinstance(error, StorageError):
        logger.error("Storage failure: %s", error.message, exc_info=error)
    detail = {"code": error.code, "message": error.message}
    if error.hint:
        detail["hint"] = error.hint
    return HTTPException(status_code=error.http_status, detail=detail)
