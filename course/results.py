"""Result envelope returned by every public service operation."""

from __future__ import annotations

import dataclasses
import datetime
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Mapping, Optional, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class RecordNotFoundError(LookupError):
    """Raised inside a service when the requested record does not exist."""


@dataclass(slots=True)
class Result:
    success: bool
    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = None
    not_found: bool = False

    @classmethod
    def ok(cls, data: Any = None, *, message: Optional[str] = None) -> "Result":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str, *, not_found: bool = False) -> "Result":
        return cls(success=False, error=error, not_found=not_found)

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        payload: dict[str, Any] = {"success": True}
        if self.data is not None:
            payload["data"] = to_payload(self.data)
        if self.message:
            payload["message"] = self.message
        return payload


def to_payload(value: Any) -> Any:
    """Convert records, datetimes and containers into JSON-ready values."""
    if hasattr(value, "to_document"):
        return to_payload(value.to_document())
    if hasattr(value, "to_dict") and not isinstance(value, Mapping):
        return to_payload(value.to_dict())
    if isinstance(value, datetime.datetime):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_payload(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        return {str(key): to_payload(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_payload(item) for item in value]
    return value


def enveloped(action: str) -> Callable[[F], F]:
    """Wrap a service method so it always returns a :class:`Result`.

    Plain return values become ``Result.ok(value)``; raised exceptions become
    ``Result.fail(message)``.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Result:
            try:
                outcome = func(*args, **kwargs)
            except RecordNotFoundError as exc:
                logger.info("Could not %s: %s", action, exc)
                return Result.fail(str(exc), not_found=True)
            except ValueError as exc:
                logger.warning("Rejected request to %s: %s", action, exc)
                return Result.fail(str(exc))
            except Exception as exc:
                logger.error("Failed to %s: %s", action, exc, exc_info=True)
                return Result.fail(str(exc) or f"Failed to {action}.")
            if isinstance(outcome, Result):
                return outcome
            return Result.ok(outcome)

        return wrapper  # type: ignore[return-value]

    return decorator
