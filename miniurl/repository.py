"""Persistence layer for short links and click events.

The repositories wrap an ``AsyncSession`` and expose exactly the operations
the service components need.

``ShortLinkRepository.insert`` never raises for store errors. It returns an
``InsertResult`` so the allocator can tell a short code collision (retry)
from any other failure (give up) without matching on exceptions:

::
    insert(url, code)
        │
        ├─ commit ok ───────────────────────► INSERTED (link)
        ├─ IntegrityError on short_code ────► rollback, COLLISION
        └─ any other SQLAlchemyError ───────► rollback, FAILURE (error)
"""

import datetime
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from miniurl.enums import InsertStatus
from miniurl.models import SHORT_CODE_CONSTRAINT, LinkClick, ShortLink

__all__ = ["InsertResult", "ShortLinkRepository", "ClickRepository", "is_short_code_collision"]

# PostgreSQL reports the constraint name, SQLite reports table.column.
_COLLISION_MARKERS = (SHORT_CODE_CONSTRAINT, "short_links.short_code")


@dataclass(frozen=True)
class InsertResult:
    status: InsertStatus
    link: ShortLink | None = None
    error: Exception | None = None

    @classmethod
    def inserted(cls, link: ShortLink) -> "InsertResult":
        return cls(status=InsertStatus.INSERTED, link=link)

    @classmethod
    def collision(cls, error: Exception | None = None) -> "InsertResult":
        return cls(status=InsertStatus.COLLISION, error=error)

    @classmethod
    def failure(cls, error: Exception) -> "InsertResult":
        return cls(status=InsertStatus.FAILURE, error=error)


def is_short_code_collision(exc: IntegrityError) -> bool:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    return any(marker in message for marker in _COLLISION_MARKERS)


class ShortLinkRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def insert(self, destination_url: str, short_code: str) -> InsertResult:
        link = ShortLink(short_code=short_code, destination_url=destination_url)
        self._session.add(link)
        try:
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            if is_short_code_collision(exc):
                return InsertResult.collision(exc)
            return InsertResult.failure(exc)
        except SQLAlchemyError as exc:
            await self._session.rollback()
            return InsertResult.failure(exc)

        return InsertResult.inserted(link)

    async def find_by_short_code(self, short_code: str) -> ShortLink | None:
        result = await self._session.execute(select(ShortLink).where(ShortLink.short_code == short_code))
        return result.scalar_one_or_none()

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(ShortLink))
        return int(result.scalar_one())


class ClickRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(
        self,
        short_code: str,
        ip_address: str | None,
        referrer: str | None,
        user_agent: str | None,
    ) -> LinkClick:
        click = LinkClick(
            short_code=short_code,
            ip_address=ip_address,
            referrer=referrer,
            user_agent=user_agent,
        )
        self._session.add(click)
        await self._session.commit()
        return click

    async def count_clicks(self, short_code: str) -> int:
        result = await self._session.execute(
            select(func.count(LinkClick.id)).where(LinkClick.short_code == short_code)
        )
        return int(result.scalar_one())

    async def count_unique_visitors(self, short_code: str) -> int:
        result = await self._session.execute(
            select(func.count(func.distinct(LinkClick.ip_address))).where(LinkClick.short_code == short_code)
        )
        return int(result.scalar_one())

    async def recent_clicks(self, short_code: str, limit: int) -> list[LinkClick]:
        result = await self._session.execute(
            select(LinkClick)
            .where(LinkClick.short_code == short_code)
            .order_by(LinkClick.clicked_at.desc(), LinkClick.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def clicks_by_date(self, short_code: str) -> list[tuple[datetime.date | str, int]]:
        day = func.date(LinkClick.clicked_at)
        result = await self._session.execute(
            select(day, func.count(LinkClick.id))
            .where(LinkClick.short_code == short_code)
            .group_by(day)
            .order_by(day)
        )
        return [(row[0], int(row[1])) for row in result.all()]

    async def top_referrers(self, short_code: str, limit: int) -> list[tuple[Any, int]]:
        hits = func.count(LinkClick.id)
        result = await self._session.execute(
            select(LinkClick.referrer, hits)
            .where(LinkClick.short_code == short_code, LinkClick.referrer.is_not(None))
            .group_by(LinkClick.referrer)
            .order_by(hits.desc())
            .limit(limit)
        )
        return [(row[0], int(row[1])) for row in result.all()]
