# services/script_cache.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from webinar.models import ScriptCache

logger = logging.getLogger(__name__)


class CacheUnavailable(RuntimeError):
    pass


@dataclass(frozen=True)
class CacheEntry:
    content_hash: str
    document_id: str
    page_number: int
    total_pages: int
    script: str
    audio_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: ScriptCache) -> "CacheEntry":
        return cls(
            content_hash=row.content_hash,
            document_id=row.pdf_id,
            page_number=row.page_number,
            total_pages=row.total_pages,
            script=row.script,
            audio_url=row.audio_url,
            created_at=row.created_at,
        )


class ScriptCacheStore:
    """Insert-only store keyed by content hash. A row existing is the whole cache-hit signal."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, digest: str) -> Optional[CacheEntry]:
        try:
            row = (
                await self.db.execute(select(ScriptCache).where(ScriptCache.content_hash == digest))
            ).scalars().first()
        except SQLAlchemyError as e:
            raise CacheUnavailable(f"script cache read failed: {e}") from e
        return CacheEntry.from_row(row) if row else None

    async def put(self, entry: CacheEntry) -> CacheEntry:
        """
        Insert `entry`. If a concurrent request already stored the same hash,
        keep the stored row (first writer wins) and return it.
        """
        row = ScriptCache(
            content_hash=entry.content_hash,
            pdf_id=entry.document_id,
            page_number=entry.page_number,
            total_pages=entry.total_pages,
            script=entry.script,
            audio_url=entry.audio_url,
        )
        self.db.add(row)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info("script_cache: %s already stored by another request", entry.content_hash)
            existing = await self.get(entry.content_hash)
            if existing is None:
                raise CacheUnavailable(f"script cache conflict on {entry.content_hash} but no row found")
            return existing
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise CacheUnavailable(f"script cache write failed: {e}") from e
        await self.db.refresh(row)
        return CacheEntry.from_row(row)
