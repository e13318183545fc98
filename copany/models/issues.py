"""ORM model for issues, the work items contribution is scored from."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import ID_TYPE, Base


class Issue(Base):
    """Issue row; ``level`` and ``state`` hold the integer codes used by the backend."""

    __tablename__ = "issue"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    copany_id: Mapped[int] = mapped_column(ID_TYPE, ForeignKey("copany.id"), nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(String(255))
    assignee: Mapped[str | None] = mapped_column(String(64))
    level: Mapped[int | None] = mapped_column(SmallInteger)
    state: Mapped[int | None] = mapped_column(Integer)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
