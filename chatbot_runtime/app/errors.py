"""
Typed business errors + FastAPI exception handlers.
Every failure leaves the API as {success: false, data: null, error: {code, message, details?}}.
"""
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.logging_config import get_logger

logger = get_logger(__name__)

VALIDATION_ERROR = "VALIDATION_ERROR"
CHATBOT_NOT_FOUND = "CHATBOT_NOT_FOUND"
NO_RELEVANT_TAG = "NO_RELEVANT_TAG"
LLM_UNAVAILABLE = "LLM_UNAVAILABLE"
RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    """Business error with a stable machine-readable code and HTTP status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details


def error_envelope(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Failure body shared by handlers and middleware."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"success": False, "data": None, "error": error}


# pydantic error type -> issue code
_ISSUE_BY_TYPE = {
    "missing": "REQUIRED",
    "int_type": "INVALID_TYPE",
    "string_type": "INVALID_TYPE",
    "list_type": "INVALID_TYPE",
    "model_type": "INVALID_ITEM",
    "dict_type": "INVALID_ITEM",
    "greater_than": "INVALID_VALUE",
    "literal_error": "INVALID_ROLE",
    "json_invalid": "INVALID_JSON",
}
# model-level issues have no field in loc
_FIELD_BY_ISSUE = {"ONE_REQUIRED": "chatbotId|domain"}


def _validation_details(exc: RequestValidationError) -> List[Dict[str, Any]]:
    """
    Flatten pydantic errors to [{field, issue, index?}].
    Custom validators raise ValueError("ISSUE_CODE"); pydantic prefixes "Value error, ".
    """
    out: List[Dict[str, Any]] = []
    for err in exc.errors():
        loc = [p for p in err.get("loc", ()) if p != "body"]
        index = next((p for p in loc[1:] if isinstance(p, int)), None)
        field = ".".join(str(p) for p in loc if not isinstance(p, int))
        issue = _ISSUE_BY_TYPE.get(err.get("type", ""))
        if issue is None:
            issue = str(err.get("msg", "")).removeprefix("Value error, ")
        field = field or _FIELD_BY_ISSUE.get(issue, "body")
        item: Dict[str, Any] = {"field": field, "issue": issue}
        if index is not None:
            item["index"] = index
        out.append(item)
    return out


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.code, exc.message, exc.details),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = _validation_details(exc)
    logger.info("request.validation_failed", path=request.url.path, errors=len(details))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_envelope(VALIDATION_ERROR, "Invalid request body", {"errors": details}),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("request.unhandled_error", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_envelope(INTERNAL_ERROR, "An internal error occurred."),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach envelope handlers to the app."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
