from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.auth import security
from taskflow.auth.models import Credential
from taskflow.auth.schemas import Actor
from taskflow.db.dependencies import get_db_session
from taskflow.workflow.enums import Role

# --- OAuth2 Scheme ---
# Where the docs UI looks for the token endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")


async def get_current_credential(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_db_session),
) -> Credential:
    """
    Decode the session token and load the credential it was issued for.

    A token is rejected when its ``sv`` claim no longer matches the
    credential's session_version, i.e. after logout.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = security.decode_access_token(token)
        email = payload.get("sub")
        role = Role(payload.get("role"))
        session_version = int(payload.get("sv"))
        if email is None:
            raise credentials_exception
    except (JWTError, ValueError, TypeError):
        raise credentials_exception

    stmt = select(Credential).where(
        Credential.email == email,
        Credential.system_role == role,
    )
    result = await session.execute(stmt)
    credential = result.scalar_one_or_none()

    if credential is None or credential.session_version != session_version:
        raise credentials_exception

    return credential


async def get_current_actor(
    credential: Credential = Depends(get_current_credential),
) -> Actor:
    """The identity workflow operations run on behalf of."""
    return Actor(
        name=credential.name,
        email=credential.email,
        role=credential.system_role,
    )
