from functools import wraps
from typing import Any, Callable, TypeVar, cast

from fastapi import HTTPException, status
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.ext.asyncio import AsyncSession

F = TypeVar("F", bound=Callable[..., Any])

_email_adapter = TypeAdapter(EmailStr)


# ---- Custom exceptions ----
class ServiceError(Exception):
    """Base class for service errors."""


class NotFound(ServiceError):
    pass


class Conflict(ServiceError):
    pass


class PermissionDenied(ServiceError):
    """The acting user's role or identity does not allow the operation."""


class ValidationError(ServiceError):
    """A required field is missing or malformed."""


class InvalidStateTransition(Conflict):
    """The task's approval status does not accept the requested event."""


# ---- Utilities ----
def normalize_email(email: str) -> str:
    """Canonical form every stored or compared email goes through."""
    return (email or "").strip().lower()


def validate_email(email: str) -> str:
    """Check the address format, then normalize it."""
    try:
        checked = _email_adapter.validate_python((email or "").strip())
    except SchemaValidationError as exc:
        raise ValidationError(f"Invalid email address: {email!r}") from exc
    return normalize_email(checked)


async def _get_or_404(session: AsyncSession, model, pk: str):
    obj = await session.get(model, pk)
    if obj is None:
        raise NotFound(f"{model.__name__} with id={pk} not found")
    return obj


def translate_service_errors(fn: F) -> F:
    """
    Decorator which translates service exceptions into HTTPExceptions while
    preserving the wrapped function's signature so FastAPI/OpenAPI behave correctly.
    """

    @wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await fn(*args, **kwargs)
        except NotFound as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        except PermissionDenied as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
        except ValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(e),
            )
        except Conflict as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        except ServiceError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return cast(F, wrapper)
