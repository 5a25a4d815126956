"""
Abstract collaborators of the refresh coordinator
"""

from abc import ABC, abstractmethod
from typing import Iterable, List

from schemas.record import Record


class RowSource(ABC):
    """
    Produces the raw rows of one published CSV dataset.

    Responsibilities:
    - Transport (timeouts, retries, backoff)
    - Tokenizing the payload into ordered column strings

    The first row returned is the header; callers skip it.
    """

    @abstractmethod
    async def fetch_rows(self, url: str) -> List[List[str]]:
        """
        Fetch every row of the dataset at ``url``.

        Raises:
            ExtractionError: When the source stays unreachable after retries
        """
        pass


class DatasetLoader(ABC):
    """
    Replaces the full contents of one table as a single unit of work.

    Either every record lands or the table keeps its previous contents.
    """

    @abstractmethod
    async def load(self, table_name: str, records: Iterable[Record]) -> int:
        """
        Replace ``table_name`` with ``records``.

        Returns:
            Number of rows written

        Raises:
            LoadError: On any failure; nothing is left partially written
        """
        pass

    @abstractmethod
    async def row_count(self, table_name: str) -> int:
        """Current number of rows in ``table_name``"""
        pass
