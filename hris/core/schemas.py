import functools
import logging
from typing import Any, Callable, Dict, Generic, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone
from sqlalchemy.exc import SQLAlchemyError

from hris.core.exceptions import AppException

logger = logging.getLogger(__name__)

T = TypeVar("T")

class ErrorInfo(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None

class ApiResponse(BaseModel, Generic[T]):
    model_config = ConfigDict(json_encoders={datetime: lambda v: v.isoformat()})

    success: bool
    data: Optional[T] = None
    error: Optional[ErrorInfo] = None
    metadata: Dict[str, Any] = {}
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with JSON-serializable values."""
        return self.model_dump(mode="json")

    @classmethod
    def ok(cls, data: T = None, metadata: Optional[Dict[str, Any]] = None) -> "ApiResponse[T]":
        return cls(success=True, data=data, metadata=metadata or {})

    @classmethod
    def fail(cls, message: str, code: str = "ERROR", details: Optional[Dict[str, Any]] = None) -> "ApiResponse[T]":
        return cls(
            success=False,
            error=ErrorInfo(code=code, message=message, details=details)
        )


def result_boundary(fn: Callable[..., Any]) -> Callable[..., ApiResponse]:
    """
    Converts a raising operation into one that always returns an ApiResponse.

    Domain errors (AppException) become failures carrying their code and
    message; store errors become a generic STORE_ERROR with the driver message.
    Anything else is a programming error and is allowed to propagate.
    """
    @functools.wraps(fn)
    def wrapper(*args, **kwargs) -> ApiResponse:
        try:
            payload = fn(*args, **kwargs)
        except AppException as e:
            logger.info(f"{fn.__name__} rejected: {e.message}", extra={"code": e.error_code})
            return ApiResponse.fail(e.message, code=e.error_code, details=e.details)
        except SQLAlchemyError as e:
            logger.error(f"{fn.__name__} failed at the store: {e}", exc_info=True)
            underlying = getattr(e, "orig", None) or e
            return ApiResponse.fail(f"Storage error: {underlying}", code="STORE_ERROR")
        if isinstance(payload, ApiResponse):
            return payload
        return ApiResponse.ok(payload)
    return wrapper
