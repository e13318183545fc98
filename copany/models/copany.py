"""ORM models for copanies and their contributor memberships."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, SmallInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from .base import ID_TYPE, Base


class Copany(Base):
    """A collaborative company; ``created_by`` is its owner."""

    __tablename__ = "copany"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    distribution_delay_days: Mapped[int | None] = mapped_column(Integer)
    distribution_day_of_month: Mapped[int | None] = mapped_column(SmallInteger, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )

    contributors: Mapped[list["CopanyContributor"]] = relationship(
        back_populates="copany", cascade="all, delete-orphan"
    )


class CopanyContributor(Base):
    """Membership of a user in a copany, with a baseline contribution weight."""

    __tablename__ = "copany_contributor"
    __table_args__ = (UniqueConstraint("copany_id", "user_id", name="uq_copany_contributor"),)

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    copany_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("copany.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(160), nullable=False, server_default="")
    contribution: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False, server_default="0")

    copany: Mapped[Copany] = relationship(back_populates="contributors")
