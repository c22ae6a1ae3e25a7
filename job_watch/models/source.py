"""Source model: one tracked career-page URL."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

STATUS_PENDING = "pending"
STATUS_OK = "ok"
STATUS_ERROR = "error"


class Source(Base):
    __tablename__ = "sources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(2048), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    last_checked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_status: Mapped[str] = mapped_column(String(20), default=STATUS_PENDING)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    jobs: Mapped[list["Job"]] = relationship(
        back_populates="source", cascade="all, delete-orphan", passive_deletes=True
    )
    runs: Mapped[list["JobRun"]] = relationship(
        back_populates="source", cascade="all, delete-orphan", passive_deletes=True
    )
    exclusions: Mapped[list["JobExclusion"]] = relationship(
        back_populates="source", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Source {self.id} {self.url} ({self.last_status})>"
