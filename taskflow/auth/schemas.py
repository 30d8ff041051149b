from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from taskflow.workflow.enums import Role


class Actor(BaseModel):
    """Already-resolved identity an operation runs on behalf of."""

    name: str
    email: str
    role: Role


class CredentialLookup(BaseModel):
    email: str
    role: Role


class LoginIn(CredentialLookup):
    otp: str = Field(..., min_length=6, max_length=6)


class CredentialOut(BaseModel):
    """What login step one reveals about an account."""

    user_id: str
    name: str
    role: Role


class AccountCreate(BaseModel):
    name: str = Field(..., max_length=200)
    email: EmailStr
    job_role: str = Field(..., max_length=120)
    system_role: Role = Role.STAFF
    is_doer: bool = True


class AccountOut(BaseModel):
    """Generated credentials, shown once to the superadmin."""

    user_id: str
    name: str
    email: str
    otp: str
    system_role: Role
    team_member_id: Optional[str] = None


class Token(BaseModel):
    access_token: str
    token_type: str
