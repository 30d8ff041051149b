import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt

from taskflow.settings import settings
from taskflow.workflow.enums import Role

SECRET_KEY = settings.secret_key
ALGORITHM = settings.token_algorithm

USER_ID_PREFIXES = {
    Role.STAFF: "STF",
    Role.ADMIN: "ADM",
    Role.SUPERADMIN: "SPA",
}

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def create_access_token(
    data: Dict[str, Any], expires_delta: Optional[timedelta] = None,
) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Raises jose.JWTError for a bad signature or an expired token."""
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])


def generate_otp() -> str:
    """Six digits, never starting with zero."""
    return str(100000 + secrets.randbelow(900000))


def verify_otp(plain_otp: str, stored_otp: str) -> bool:
    return secrets.compare_digest(plain_otp.encode(), stored_otp.encode())


def _to_base36(number: int) -> str:
    digits = []
    while True:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
        if number == 0:
            break
    return "".join(reversed(digits))


def generate_user_id(email: str, role: Role, now_ms: Optional[int] = None) -> str:
    """<role prefix>-<first four chars of the mailbox>-<base36 millis>."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    prefix = USER_ID_PREFIXES.get(role, "USR")
    mailbox = email.split("@")[0][:4].upper()
    return f"{prefix}-{mailbox}-{_to_base36(now_ms)}"
