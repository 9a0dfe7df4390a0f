"""SQLAlchemy table metadata for the document store.

Every document lives in one ``documents`` row keyed by its collection and the
canonical JSON encoding of its ``_id``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Column, MetaData, String, Table

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.ext.asyncio import AsyncEngine

log = logging.getLogger(__name__)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "pk": "pk_%(table_name)s",
    }
)

documents_table = Table(
    "documents",
    metadata,
    Column("collection", String, primary_key=True),
    Column("document_id", String, primary_key=True),
    Column("body", JSON, nullable=False),
)


def create_all_tables(engine: Engine) -> None:
    """Create all tables."""
    log.info("Creating all tables")
    metadata.create_all(engine)


async def create_all_tables_async(engine: AsyncEngine) -> None:
    log.info("Creating all tables")
    async with engine.begin() as connection:
        await connection.run_sync(metadata.create_all)
