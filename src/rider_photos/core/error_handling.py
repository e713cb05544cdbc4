"""Error sanitization and translation shared by every stage."""

import functools
import os
import traceback
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Type, TypeVar

from botocore.exceptions import ClientError

from .exceptions import PhotoRejectedError, RiderPhotosError
from .logging_config import get_logger
from .models import ErrorDetail, ResultEnvelope, StageResult

GENERIC_FAILURE_MESSAGE = "Image processing failed"
INTERNAL_ERROR_KIND = "InternalError"
SENSITIVE_EVENT_FIELDS = ("credentials", "authorization")

F = TypeVar("F", bound=Callable[..., Any])


def is_development(environ: Optional[Mapping[str, str]] = None) -> bool:
    """True when APP_ENV marks a development deployment."""
    env = os.environ if environ is None else environ
    return env.get("APP_ENV", "").strip().lower() == "development"


def error_kind(exc: BaseException) -> str:
    """Return the caller-facing kind of an exception."""
    if isinstance(exc, RiderPhotosError):
        return exc.kind
    return INTERNAL_ERROR_KIND


def provider_error_code(exc: BaseException) -> str:
    """Return the provider error code without its message text."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "Unknown")
    return type(exc).__name__


def sanitize_log_data(data: Any) -> Any:
    """Copy an incoming event without credential-bearing fields."""
    if not isinstance(data, Mapping):
        return data
    return {k: v for k, v in data.items() if k not in SENSITIVE_EVENT_FIELDS}


def sanitize_error(exc: BaseException, include_stack: Optional[bool] = None) -> Dict[str, Any]:
    """Describe an exception for server-side logs.

    Only pipeline errors keep their message; anything else is reduced to its
    type. The stack trace is attached in development deployments only.
    """
    if include_stack is None:
        include_stack = is_development()

    if isinstance(exc, RiderPhotosError):
        message = str(exc)
    else:
        message = f"Unexpected {type(exc).__name__}"

    sanitized: Dict[str, Any] = {"message": message, "type": error_kind(exc)}
    if include_stack:
        sanitized["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return sanitized


def error_envelope(exc: BaseException) -> Dict[str, Any]:
    """Build the 500 envelope for any failure; the original message never leaves the process."""
    envelope = ResultEnvelope(
        status_code=500,
        error=ErrorDetail(message=GENERIC_FAILURE_MESSAGE, type=error_kind(exc)),
    )
    return envelope.to_response()


@contextmanager
def translate_errors(
    error_cls: Type[RiderPhotosError],
    message: str,
    logger: Any = None,
    context: Any = None,
) -> Iterator[None]:
    """Convert any non-pipeline exception raised in the block into ``error_cls(message)``.

    Provider errors are logged by code only.
    """
    try:
        yield
    except RiderPhotosError:
        raise
    except Exception as exc:  # noqa: BLE001
        if logger is not None:
            logger.error(message, context, provider_error=provider_error_code(exc))
        raise error_cls(message) from exc


def with_error_handling(func: F) -> F:
    """
    Wrap a collaborator stage handler with the stage-boundary error policy.

    Business-rule rejections become a ``rejected`` StageResult; every other
    failure is logged in sanitized form and re-raised so the orchestrator can
    retry it.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        logger = get_logger(func.__name__)
        try:
            return func(*args, **kwargs)
        except PhotoRejectedError as exc:
            logger.info(f"Photo rejected: {exc.kind}: {exc}")
            return StageResult.rejected(exc.kind, str(exc)).to_response()
        except Exception as exc:
            logger.error(f"Stage '{func.__name__}' failed: {sanitize_error(exc)}")
            raise

    return wrapper  # type: ignore[return-value]
