"""Error handlers for the HTTP surface"""

from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

from .base import ApplicationError, ErrorCode, ErrorLevel
from .error_context import ErrorContext, ErrorContextManager
from .logging import get_logger

logger = get_logger(__name__)

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_INPUT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONFIG_MISSING: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.AUTHENTICATION_FAILED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.MODEL_INITIALIZATION_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.EMBEDDING_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.STORAGE_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.STREAM_FAILED: status.HTTP_502_BAD_GATEWAY,
}


class ErrorHandler:
    """Renders application errors as JSON bodies"""

    def format_response(self, error_context: ErrorContext, level: ErrorLevel) -> dict[str, Any]:
        response: dict[str, Any] = {
            "error": str(error_context.error),
            "error_code": ErrorCode.UNKNOWN.value,
            "level": level.value,
            "trace_id": error_context.trace_id,
            "timestamp": error_context.timestamp.isoformat(),
        }

        if isinstance(error_context.error, ApplicationError):
            response["error_code"] = error_context.error.code.value
            response["details"] = error_context.error.details.model_dump(mode="json")

        return response

    def status_for(self, error: ApplicationError) -> int:
        return STATUS_BY_CODE.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    async def handle_application_error(self, request: Request, error: ApplicationError) -> JSONResponse:
        async with ErrorContextManager(error, path=request.url.path) as ctx:
            logger.log(
                error.level.to_logging_level(),
                f"Request failed: {error.message}",
                error_context=ctx.to_dict(),
            )
            return JSONResponse(
                status_code=self.status_for(error),
                content=self.format_response(ctx, error.level),
            )
