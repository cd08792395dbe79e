"""
Record store adapters.

A record store keeps one write-once document per order number and can list
the order numbers that start with a given prefix. The fallback scanner relies
on that listing to rebuild a running number after the cache loses it.
"""
import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import List, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .errors import RecordExists, RecordStoreError
from .models import CustomerOrder
from .schemas import OrderRecord


class RecordStore(Protocol):
    async def put(self, record: OrderRecord) -> None: ...

    async def list_keys(self, prefix: str) -> List[str]: ...


def _escape_like(prefix: str) -> str:
    return prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlRecordStore:
    """Stores each order as a JSON document row keyed by its order number."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def put(self, record: OrderRecord) -> None:
        row = CustomerOrder(
            order_number=record.order_number,
            customer_id=record.customer_id,
            document=record.to_document(),
        )
        # Driver connect errors (e.g. ConnectionRefusedError) surface unwrapped as OSError
        try:
            async with self.session_factory() as db:
                db.add(row)
                await db.commit()
        except IntegrityError as e:
            raise RecordExists(record.order_number) from e
        except (SQLAlchemyError, OSError) as e:
            raise RecordStoreError(f"{type(e).__name__}: {e}") from e

    async def list_keys(self, prefix: str) -> List[str]:
        stmt = select(CustomerOrder.order_number).where(
            CustomerOrder.order_number.like(f"{_escape_like(prefix)}%", escape="\\")
        )
        try:
            async with self.session_factory() as db:
                result = await db.execute(stmt)
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            raise RecordStoreError(f"{type(e).__name__}: {e}") from e


class FileRecordStore:
    """
    One pretty-printed ``{order_number}.json`` file per order in a directory.

    The document is written to a hidden temp file and then hard-linked to its
    final name, so an order file is either complete or absent, and an
    existing order is never overwritten. Blocking filesystem calls run in a
    worker thread.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, order_number: str) -> Path:
        return self.directory / f"{order_number}.json"

    def _write(self, record: OrderRecord) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(record.to_document(), indent=2, ensure_ascii=False)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.link(tmp_path, self._path(record.order_number))  # FileExistsError if taken
        finally:
            os.unlink(tmp_path)

    async def put(self, record: OrderRecord) -> None:
        try:
            await asyncio.to_thread(self._write, record)
        except FileExistsError as e:
            raise RecordExists(record.order_number) from e
        except OSError as e:
            raise RecordStoreError(str(e)) from e

    async def list_keys(self, prefix: str) -> List[str]:
        try:
            names = await asyncio.to_thread(os.listdir, self.directory)
        except FileNotFoundError:
            # Created on the first write; until then there is nothing to find
            return []
        except OSError as e:
            raise RecordStoreError(str(e)) from e
        return [
            name[: -len(".json")]
            for name in names
            if name.startswith(prefix) and name.endswith(".json")
        ]
