"""Product lookup by case-insensitive tag match against video titles."""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger
from sqlalchemy import Column, MetaData, Select, String, Table, Text, func, or_, select

from bents_assistant.domain.infrastructure.database import Database
from bents_assistant.domain.models import Product

_metadata = MetaData()

products_table = Table(
    "products",
    _metadata,
    Column("id", String, primary_key=True),
    Column("title", Text),
    Column("tags", Text),
    Column("link", Text),
)


def split_tags(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


class PostgresProductStore:
    """``IProductStore`` over the ``products`` table (tags stored comma-separated)."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @staticmethod
    def build_lookup_statement(titles: Sequence[str]) -> Select:
        p = products_table
        lowered_tags = func.lower(p.c.tags, type_=Text)
        return (
            select(p.c.id, p.c.title, p.c.tags, p.c.link)
            .distinct(p.c.id)
            .where(or_(*(lowered_tags.contains(t.lower(), autoescape=True) for t in titles)))
        )

    async def find_by_video_titles(self, titles: Sequence[str]) -> list[Product]:
        if not titles:
            return []

        stmt = self.build_lookup_statement(titles)
        async with self.database.engine.connect() as conn:
            result = await conn.execute(stmt)
            rows = result.mappings().all()

        logger.info("Product lookup | titles={} rows={}", len(titles), len(rows))
        return [
            Product(
                id=str(row["id"]),
                title=row["title"] or "",
                tags=split_tags(row["tags"]),
                link=row["link"] or "",
            )
            for row in rows
        ]
