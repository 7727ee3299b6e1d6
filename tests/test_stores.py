"""Tests for the Postgres-backed document and product stores.

SQL is checked by compiling statements against the PostgreSQL dialect;
execution goes through a fake engine so no database is needed.
"""

from contextlib import asynccontextmanager

import pytest
from sqlalchemy.dialects import postgresql

from bents_assistant.application.exceptions import TableNotAllowedError
from bents_assistant.domain.infrastructure.document_store import PgVectorDocumentStore
from bents_assistant.domain.infrastructure.product_store import PostgresProductStore, split_tags


class FakeResult:
    def __init__(self, rows):
        self._rows = rows

    def mappings(self):
        return self

    def all(self):
        return self._rows


class FakeConnection:
    def __init__(self, rows):
        self.rows = rows
        self.statements = []

    async def execute(self, stmt):
        self.statements.append(stmt)
        return FakeResult(self.rows)


class FakeEngine:
    def __init__(self, rows):
        self.conn = FakeConnection(rows)

    @asynccontextmanager
    async def connect(self):
        yield self.conn


class FakeDatabase:
    def __init__(self, rows=()):
        self.engine = FakeEngine(list(rows))


def compile_pg(stmt):
    return stmt.compile(dialect=postgresql.dialect())


class TestPgVectorDocumentStore:
    def test_search_statement(self):
        store = PgVectorDocumentStore(FakeDatabase(), ["bents"], dimensions=3)
        sql = str(compile_pg(store.build_search_statement([0.1, 0.2, 0.3], "bents", 5)))

        assert "FROM bents" in sql
        assert "<=>" in sql
        assert "similarity_score" in sql
        assert "IS NOT NULL" in sql
        assert "ORDER BY" in sql
        assert "LIMIT" in sql

    def test_rejects_unknown_table(self):
        store = PgVectorDocumentStore(FakeDatabase(), ["bents"], dimensions=3)
        with pytest.raises(TableNotAllowedError):
            store.build_search_statement([0.1], "users; DROP TABLE bents", 5)

    async def test_search_maps_rows(self):
        rows = [
            {
                "id": 7,
                "text": "Hone at 25 degrees",
                "title": "Sharpening",
                "url": "https://yt.com/s",
                "chunk_id": 3,
                "similarity_score": 0.87,
            },
            {
                "id": 8,
                "text": None,
                "title": None,
                "url": None,
                "chunk_id": 4,
                "similarity_score": 1.0000001,
            },
        ]
        store = PgVectorDocumentStore(FakeDatabase(rows), ["bents"], dimensions=3)

        docs = await store.search([0.1, 0.2, 0.3], "bents", 10)

        assert docs[0].id == "7"
        assert docs[0].chunk_id == "3"
        assert docs[0].similarity_score == pytest.approx(0.87)
        assert docs[1].text == ""
        assert docs[1].similarity_score == 1.0


class TestPostgresProductStore:
    def test_lookup_statement(self):
        compiled = compile_pg(
            PostgresProductStore.build_lookup_statement(["Workshop Basics", "Table Saw"])
        )
        sql = str(compiled)

        assert "DISTINCT ON (products.id)" in sql
        assert "lower(products.tags) LIKE" in sql
        assert sql.count(" OR ") == 1
        values = [str(v) for v in compiled.params.values()]
        assert "workshop basics" in values
        assert "table saw" in values

    async def test_find_maps_rows(self):
        rows = [{"id": 1, "title": "Chisel Set", "tags": "Workshop Basics, Chisels ,", "link": "l"}]
        store = PostgresProductStore(FakeDatabase(rows))

        products = await store.find_by_video_titles(["Workshop Basics"])

        assert products[0].id == "1"
        assert products[0].tags == ["Workshop Basics", "Chisels"]

    async def test_empty_titles_skip_query(self):
        database = FakeDatabase()
        store = PostgresProductStore(database)

        assert await store.find_by_video_titles([]) == []
        assert database.engine.conn.statements == []


class TestSplitTags:
    def test_none(self):
        assert split_tags(None) == []

    def test_strips_and_drops_empty(self):
        assert split_tags(" a ,b,, ") == ["a", "b"]
