from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.auth import services
from taskflow.auth.dependencies import get_current_actor
from taskflow.auth.schemas import (
    AccountCreate,
    AccountOut,
    Actor,
    CredentialLookup,
    CredentialOut,
    LoginIn,
    Token,
)
from taskflow.db.dependencies import get_db_session
from taskflow.utils import translate_service_errors

router = APIRouter()


# -----------------------
# Authentication endpoints
# -----------------------
@router.post("/lookup", response_model=CredentialOut)
async def lookup_credential(
    payload: CredentialLookup,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Login step one: confirm an account exists for this email and role.
    """
    credential = await services.find_credential(session, payload.email, payload.role)
    if credential is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=(
                f"No account found with email {payload.email} and role "
                f"{payload.role.value}. Contact your administrator."
            ),
        )
    return CredentialOut(
        user_id=credential.user_id,
        name=credential.name,
        role=credential.system_role,
    )


@router.post("/token", response_model=Token)
async def login_for_access_token(
    payload: LoginIn,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Login step two: exchange the one-time code for a bearer token.
    """
    access_token = await services.login(
        session, payload.email, payload.otp, payload.role,
    )
    if access_token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid OTP. Please check and try again.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    await services.logout(session, actor)


@router.get("/me", response_model=Actor)
async def read_me(actor: Actor = Depends(get_current_actor)):
    return actor


# -----------------------
# Account provisioning
# -----------------------
@router.post(
    "/accounts",
    response_model=AccountOut,
    status_code=status.HTTP_201_CREATED,
)
@translate_service_errors
async def create_account(
    payload: AccountCreate,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    """Superadmin only. The returned OTP is not retrievable later."""
    return await services.create_account(
        session,
        actor,
        name=payload.name,
        email=str(payload.email),
        job_role=payload.job_role,
        system_role=payload.system_role,
        is_doer=payload.is_doer,
    )
