"""
Table store interface.

The store behaves like a single spreadsheet tab: row 1 holds the headers,
data rows follow in append order and are addressed by 1-based row number.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

HEADER_ROW_NUMBER = 1
FIRST_DATA_ROW_NUMBER = 2


@dataclass(frozen=True)
class SheetSnapshot:
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)

    def column_index(self, header: str) -> int:
        """Index of a header, or -1 when the sheet has no such column."""
        try:
            return self.headers.index(header)
        except ValueError:
            return -1

    def numbered_rows(self) -> Iterator[Tuple[int, List[str]]]:
        for offset, row in enumerate(self.rows):
            yield FIRST_DATA_ROW_NUMBER + offset, row

    def as_dicts(self) -> List[Dict[str, str]]:
        return [
            {header: (row[index] if index < len(row) else "") for index, header in enumerate(self.headers)}
            for row in self.rows
        ]


def pad_row(values: List, width: int) -> List[str]:
    cells = ["" if value is None else str(value) for value in values]
    if len(cells) < width:
        cells.extend([""] * (width - len(cells)))
    return cells


class SheetStore(ABC):
    """Interface for the spreadsheet-backed ticket table."""

    @abstractmethod
    async def read_all(self) -> SheetSnapshot:
        """Return the header row and every data row, blank cells as ""."""
        ...

    @abstractmethod
    async def get_headers(self) -> List[str]:
        """Return the header row, or [] for an empty sheet."""
        ...

    @abstractmethod
    async def append_rows(self, rows: List[List[str]]) -> None:
        """Append full rows after the last row."""
        ...

    @abstractmethod
    async def update_row(self, row_number: int, values: List[str]) -> None:
        """Replace every cell of an existing 1-based row.

        Raises:
            StoreError: If the row does not exist.
        """
        ...

    @abstractmethod
    async def ensure_headers(self, headers: List[str]) -> bool:
        """Write the header row when the sheet is empty. Returns True if written."""
        ...
