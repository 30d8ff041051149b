from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.auth import security
from taskflow.auth.models import Credential
from taskflow.auth.schemas import Actor, AccountOut
from taskflow.utils import Conflict, ValidationError, normalize_email, validate_email
from taskflow.workflow import services as workflow
from taskflow.workflow.enums import Role
from taskflow.workflow.permissions import require_role

SEED_SUPERADMIN_ID = "SPA-ADMIN-0001"


async def find_credential(
    session: AsyncSession, email: str, role: Role,
) -> Optional[Credential]:
    q = select(Credential).where(
        Credential.email == normalize_email(email),
        Credential.system_role == role,
    )
    result = await session.execute(q)
    return result.scalar_one_or_none()


async def verify_credential(
    session: AsyncSession, email: str, otp: str, role: Role,
) -> Optional[Credential]:
    credential = await find_credential(session, email, role)
    if credential is None or not security.verify_otp(otp, credential.otp):
        logger.warning("Failed login for {} as {}", email, role.value)
        return None
    return credential


def issue_session_token(credential: Credential) -> str:
    return security.create_access_token(
        data={
            "sub": credential.email,
            "role": credential.system_role.value,
            "name": credential.name,
            "sv": credential.session_version,
        },
    )


async def login(
    session: AsyncSession, email: str, otp: str, role: Role,
) -> Optional[str]:
    """Verify the OTP and hand out a session token, or None."""
    credential = await verify_credential(session, email, otp, role)
    if credential is None:
        return None
    credential.last_login = datetime.now(timezone.utc)
    session.add(credential)
    await session.flush()
    logger.info("{} logged in as {}", credential.email, role.value)
    return issue_session_token(credential)


async def logout(session: AsyncSession, actor: Actor) -> None:
    """Revoke every token issued to the actor's credential so far."""
    credential = await find_credential(session, actor.email, actor.role)
    if credential is None:
        return
    credential.session_version += 1
    session.add(credential)
    await session.flush()
    logger.info("{} logged out", actor.email)


def to_actor(credential: Credential) -> Actor:
    return Actor(
        name=credential.name,
        email=credential.email,
        role=credential.system_role,
    )


async def create_account(
    session: AsyncSession,
    actor: Actor,
    *,
    name: str,
    email: str,
    job_role: str,
    system_role: Role = Role.STAFF,
    is_doer: bool = True,
) -> AccountOut:
    """
    Provision a login and a roster entry for a new person.

    An existing roster entry with the same email is reused, so one person
    can hold e.g. both a staff and an admin login. The generated OTP is only
    ever returned here.
    """
    require_role(actor, {Role.SUPERADMIN})
    if not name or not name.strip():
        raise ValidationError("Name is required")
    if not job_role or not job_role.strip():
        raise ValidationError("Job role is required")
    email = validate_email(email)

    if await find_credential(session, email, system_role) is not None:
        raise Conflict(
            f"An account with email {email} and role {system_role.value} already exists",
        )

    member = await workflow.get_team_member_by_email(session, email)
    if member is None:
        member = await workflow.create_team_member(
            session,
            actor,
            name=name,
            email=email,
            job_role=job_role,
            is_doer=is_doer,
        )

    user_id = security.generate_user_id(email, system_role)
    while await session.get(Credential, user_id) is not None:
        user_id = security.generate_user_id(email, system_role)

    credential = Credential(
        user_id=user_id,
        email=email,
        otp=security.generate_otp(),
        system_role=system_role,
        name=name.strip(),
    )
    session.add(credential)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise Conflict(f"An account for {email} already exists") from exc
    logger.info(
        "Account {} ({}, {}) created by {}",
        user_id, email, system_role.value, actor.email,
    )
    return AccountOut(
        user_id=credential.user_id,
        name=credential.name,
        email=credential.email,
        otp=credential.otp,
        system_role=credential.system_role,
        team_member_id=member.id,
    )


async def ensure_superadmin(
    session: AsyncSession, *, email: str, otp: str, name: str,
) -> Optional[Credential]:
    """Seed the default superadmin login when there is none. Returns it if created."""
    q = select(Credential).where(Credential.system_role == Role.SUPERADMIN).limit(1)
    result = await session.execute(q)
    if result.scalar_one_or_none() is not None:
        return None

    credential = Credential(
        user_id=SEED_SUPERADMIN_ID,
        email=normalize_email(email),
        otp=otp,
        system_role=Role.SUPERADMIN,
        name=name,
    )
    session.add(credential)
    await session.flush()
    logger.info("Seeded default superadmin {}", credential.email)
    return credential
