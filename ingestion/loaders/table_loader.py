"""
Bulk replace the contents of one blue/green table inside a single transaction
"""

from itertools import islice
from typing import Iterable, Iterator, List
import asyncio

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, DisconnectionError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from ingestion.base import DatasetLoader
from models.crime_record import crime_record_table
from schemas.record import Record
from core.exceptions import DatabaseError, DatabaseConnectionError
import logging

logger = logging.getLogger(__name__)


def _batched(records: Iterable[Record], size: int) -> Iterator[List[Record]]:
    iterator = iter(records)
    while True:
        batch = list(islice(iterator, size))
        if not batch:
            return
        yield batch


class TableLoader(DatasetLoader):
    """
    Replace a table's rows with a fresh dataset.

    Ensures:
    - The delete and every insert batch share one transaction
    - Any failure (or cancellation) rolls back to the previous contents
    - Zero-valued records are never written
    - No retries; the refresh cycle decides what happens next
    """

    def __init__(self, engine: AsyncEngine, batch_size: int = 500):
        self.engine = engine
        self.batch_size = batch_size

    async def load(self, table_name: str, records: Iterable[Record]) -> int:
        """
        Truncate ``table_name`` and insert ``records`` in batches.

        Args:
            table_name: Target table (the inactive one)
            records: Lazily produced records; consumed once

        Returns:
            Number of rows written
        """
        table = crime_record_table(table_name)
        loaded_count = 0
        operation = "DELETE"

        try:
            async with self.engine.begin() as conn:
                await conn.execute(table.delete())

                operation = "INSERT"
                valid = (r for r in records if not r.is_empty)
                for batch in _batched(valid, self.batch_size):
                    await conn.execute(table.insert(), [r.to_row() for r in batch])
                    loaded_count += len(batch)
                    logger.debug(f"Inserted batch of {len(batch)} rows into {table_name}")

                operation = "COMMIT"

        except asyncio.CancelledError:
            logger.warning(
                f"Load into {table_name} cancelled; transaction rolled back",
                extra={"table_name": table_name, "records_written": loaded_count}
            )
            raise

        except (DisconnectionError, OSError) as e:
            raise self._connection_error(table_name, operation, loaded_count, e)

        except DBAPIError as e:
            if e.connection_invalidated:
                raise self._connection_error(table_name, operation, loaded_count, e)
            raise DatabaseError(
                f"Bulk load into {table_name} failed",
                context={
                    "operation": operation,
                    "table_name": table_name,
                    "records_written": loaded_count
                },
                original_exception=e
            )

        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Bulk load into {table_name} failed",
                context={
                    "operation": operation,
                    "table_name": table_name,
                    "records_written": loaded_count
                },
                original_exception=e
            )

        logger.info(
            f"Loaded {loaded_count} rows into {table_name}",
            extra={"table_name": table_name, "records_loaded": loaded_count}
        )
        return loaded_count

    async def row_count(self, table_name: str) -> int:
        table = crime_record_table(table_name)
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(select(func.count()).select_from(table))
                return result.scalar_one()
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to count rows in {table_name}",
                context={"operation": "SELECT", "table_name": table_name},
                original_exception=e
            )

    @staticmethod
    def _connection_error(table_name: str, operation: str, loaded_count: int, e: Exception):
        return DatabaseConnectionError(
            f"Lost database connection while loading {table_name}",
            context={
                "operation": operation,
                "table_name": table_name,
                "records_written": loaded_count
            },
            original_exception=e
        )
