"""Nearest-neighbour search over transcript chunks stored with pgvector."""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger
from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, MetaData, Select, String, Table, Text, select

from bents_assistant.application.exceptions import TableNotAllowedError
from bents_assistant.domain.infrastructure.database import Database
from bents_assistant.domain.models import RetrievedDocument


class PgVectorDocumentStore:
    """Cosine-distance search against an allow-listed chunk table.

    Table names are never interpolated into SQL text: each allowed name is
    bound to a SQLAlchemy ``Table`` object and anything else is rejected.
    """

    def __init__(self, database: Database, allowed_tables: Iterable[str], dimensions: int) -> None:
        self.database = database
        self.dimensions = dimensions
        self._metadata = MetaData()
        self._tables = {name: self._define_table(name) for name in allowed_tables}

    def _define_table(self, name: str) -> Table:
        return Table(
            name,
            self._metadata,
            Column("id", String, primary_key=True),
            Column("text", Text),
            Column("title", Text),
            Column("url", Text),
            Column("chunk_id", String),
            Column("vector", Vector(self.dimensions)),
        )

    def table(self, name: str) -> Table:
        try:
            return self._tables[name]
        except KeyError:
            raise TableNotAllowedError(f"Table '{name}' is not searchable") from None

    def build_search_statement(self, vector: list[float], table: str, top_k: int) -> Select:
        t = self.table(table)
        distance = t.c.vector.cosine_distance(vector)
        return (
            select(
                t.c.id,
                t.c.text,
                t.c.title,
                t.c.url,
                t.c.chunk_id,
                (1 - distance).label("similarity_score"),
            )
            .where(t.c.vector.is_not(None))
            .order_by(distance)
            .limit(top_k)
        )

    async def search(self, vector: list[float], table: str, top_k: int) -> list[RetrievedDocument]:
        stmt = self.build_search_statement(vector, table, top_k)
        async with self.database.engine.connect() as conn:
            result = await conn.execute(stmt)
            rows = result.mappings().all()
        logger.info("Vector search | table={} rows={}", table, len(rows))
        return [self._to_document(row) for row in rows]

    @staticmethod
    def _to_document(row) -> RetrievedDocument:
        score = float(row["similarity_score"])
        return RetrievedDocument(
            id=str(row["id"]),
            text=row["text"] or "",
            title=row["title"] or "",
            url=row["url"] or "",
            chunk_id=str(row["chunk_id"]),
            similarity_score=min(1.0, max(0.0, score)),
        )
