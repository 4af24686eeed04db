from typing import List

from app.core.exceptions import StoreError
from app.stores.base import HEADER_ROW_NUMBER, SheetSnapshot, SheetStore, pad_row


class MemorySheetStore(SheetStore):
    """Process-local sheet, used for development and tests."""

    def __init__(self, headers: List[str] = None, rows: List[List[str]] = None):
        self._rows: List[List[str]] = []
        if headers:
            self._rows.append(list(headers))
        for row in rows or []:
            self._rows.append(list(row))

    async def read_all(self) -> SheetSnapshot:
        if not self._rows:
            return SheetSnapshot()
        headers = list(self._rows[0])
        width = len(headers)
        return SheetSnapshot(
            headers=headers,
            rows=[pad_row(row, width) for row in self._rows[1:]],
        )

    async def get_headers(self) -> List[str]:
        return list(self._rows[0]) if self._rows else []

    async def append_rows(self, rows: List[List[str]]) -> None:
        for row in rows:
            self._rows.append(pad_row(row, 0))

    async def update_row(self, row_number: int, values: List[str]) -> None:
        if row_number <= HEADER_ROW_NUMBER or row_number > len(self._rows):
            raise StoreError(f"Row {row_number} does not exist", stage="update_row")
        self._rows[row_number - 1] = pad_row(values, 0)

    async def ensure_headers(self, headers: List[str]) -> bool:
        if self._rows:
            return False
        self._rows.append(list(headers))
        return True
