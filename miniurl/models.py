"""SQLAlchemy ORM models for miniurl.

This module defines the database schema using SQLAlchemy declarative models.
The short code uniqueness constraint is named explicitly so that the
repository can tell a short-code collision apart from any other integrity
error.

Data Model Layout
=================
::
    short_links table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ short_code (VARCHAR(16), UNIQUE uq_short_links_short_code)
    ├─ destination_url (VARCHAR(2048) NOT NULL)
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

    link_clicks table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ short_code (FK -> short_links.short_code, INDEXED)
    ├─ clicked_at (TIMESTAMPTZ, INDEXED)
    ├─ ip_address (VARCHAR(45))
    ├─ referrer (VARCHAR(500))
    └─ user_agent (VARCHAR(1000))

How to Use
===========
**Step 1 — Import**::
    from miniurl.models import ShortLink

**Step 2 — Query links**::
    result = await db.execute(select(ShortLink).where(ShortLink.short_code == "abc12345"))
    link = result.scalar_one_or_none()

Key Behaviours
===============
- ShortLink rows are write-once: nothing in the service updates or deletes them.
- created_at and clicked_at are assigned by the database.
- LinkClick stores the raw user agent; it is never parsed.

Classes:
    ShortLink:  A short code to destination URL mapping.
    LinkClick:  One recorded redirect of a short link.
"""

import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from miniurl.database import Base

__all__ = ["ShortLink", "LinkClick", "SHORT_CODE_CONSTRAINT"]

SHORT_CODE_CONSTRAINT = "uq_short_links_short_code"


class ShortLink(Base):
    __tablename__ = "short_links"
    __table_args__ = (UniqueConstraint("short_code", name=SHORT_CODE_CONSTRAINT),)
    # Load created_at as part of the INSERT.
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_code: Mapped[str] = mapped_column(String(16), nullable=False)
    destination_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ShortLink(id={self.id}, short_code='{self.short_code}')>"


class LinkClick(Base):
    __tablename__ = "link_clicks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    short_code: Mapped[str] = mapped_column(
        String(16), ForeignKey("short_links.short_code"), index=True, nullable=False
    )
    clicked_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True, nullable=False
    )
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    referrer: Mapped[str | None] = mapped_column(String(500), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return f"<LinkClick(id={self.id}, short_code='{self.short_code}')>"
