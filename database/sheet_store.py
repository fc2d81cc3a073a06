"""Contract for the tabular store behind the ledger.

A store holds named partitions (one per transaction category). Row 1 of a
partition holds free-form header strings; every later row is one record.
The store knows nothing about transactions: it moves raw, untyped values.
"""
from abc import ABC, abstractmethod
from collections.abc import Sequence


class StoreError(Exception):
    """Storage or transport failure reported by a SheetStore."""


class SheetStore(ABC):

    @abstractmethod
    def partitions(self) -> list[str]:
        """Names of the partitions that currently exist."""

    @abstractmethod
    def create_partition(self, name: str, headers: Sequence[str] = ()) -> None:
        """Create an empty partition, optionally seeding its header row."""

    @abstractmethod
    def fetch_headers(self, name: str) -> list[str]:
        """Current header row, in column order."""

    @abstractmethod
    def fetch_all_rows(self, name: str) -> list[dict]:
        """Every data row as a header-keyed dict.

        Position ``i`` in the returned list is the ``row_index`` accepted by
        ``overwrite_row`` and ``delete_row``.
        """

    @abstractmethod
    def append_headers(self, name: str, headers: Sequence[str]) -> None:
        """Append header cells after the last existing header."""

    @abstractmethod
    def append_row(self, name: str, values: Sequence) -> None: ...

    @abstractmethod
    def overwrite_row(self, name: str, row_index: int, values: Sequence) -> None: ...

    @abstractmethod
    def delete_row(self, name: str, row_index: int) -> None: ...

    def has_partition(self, name: str) -> bool:
        return name in self.partitions()
