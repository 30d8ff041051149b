from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from taskflow.db.base import Base
from taskflow.workflow.enums import Role


class Credential(Base):
    """
    Login record. One person may hold several, one per system role.

    Joined to the team roster by email only.
    """

    __tablename__ = "credentials"
    __table_args__ = (
        UniqueConstraint("email", "system_role", name="uq_credentials_email_role"),
    )

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)  # e.g. STF-JANE-LX2K9Q
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    otp: Mapped[str] = mapped_column(String(6), nullable=False)
    system_role: Mapped[Role] = mapped_column(SQLEnum(Role), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # bumped on logout, invalidating every token issued before
    session_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
