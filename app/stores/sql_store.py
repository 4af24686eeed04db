import logging
from typing import List

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import StoreError
from app.db.models.sheet_row import SheetRow
from app.stores.base import HEADER_ROW_NUMBER, SheetSnapshot, SheetStore, pad_row

logger = logging.getLogger(__name__)


class SqlSheetStore(SheetStore):
    """
    Sheet kept in the sheetrow table, one DB row per sheet row.
    """

    APPEND_ATTEMPTS = 10

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], sheet_name: str):
        self.session_factory = session_factory
        self.sheet_name = sheet_name

    async def read_all(self) -> SheetSnapshot:
        try:
            async with self.session_factory() as session:
                result = await session.scalars(
                    select(SheetRow)
                    .where(SheetRow.sheet_name == self.sheet_name)
                    .order_by(SheetRow.row_number)
                )
                rows = [list(row.cells or []) for row in result.all()]
        except SQLAlchemyError as e:
            logging.error(f"failed to read sheet {self.sheet_name}: {e}", exc_info=True)
            raise StoreError(f"failed to read sheet: {e}", stage="read_all")

        if not rows:
            return SheetSnapshot()
        headers = rows[0]
        return SheetSnapshot(headers=headers, rows=[pad_row(row, len(headers)) for row in rows[1:]])

    async def get_headers(self) -> List[str]:
        try:
            async with self.session_factory() as session:
                header = await session.scalar(
                    select(SheetRow)
                    .where(SheetRow.sheet_name == self.sheet_name)
                    .where(SheetRow.row_number == HEADER_ROW_NUMBER)
                )
        except SQLAlchemyError as e:
            logging.error(f"failed to read headers of {self.sheet_name}: {e}", exc_info=True)
            raise StoreError(f"failed to read headers: {e}", stage="get_headers")
        return list(header.cells) if header is not None else []

    async def append_rows(self, rows: List[List[str]]) -> None:
        """
        Appends after the current last row.

        The header row is locked for the duration of the insert so concurrent
        appends to one sheet queue up instead of taking the same row numbers.
        Where there is nothing to lock (no header row yet, or sqlite, which
        ignores FOR UPDATE) a row number clash surfaces as IntegrityError on
        the unique constraint and the append is retried.
        """
        if not rows:
            return
        cells = [pad_row(row, 0) for row in rows]
        for attempt in range(1, self.APPEND_ATTEMPTS + 1):
            try:
                await self._append_once(cells)
            except IntegrityError as e:
                if attempt == self.APPEND_ATTEMPTS:
                    logging.error(f"gave up appending to {self.sheet_name} after {attempt} attempts: {e}",
                                  exc_info=True)
                    raise StoreError(f"failed to append rows: {e}", stage="append_rows")
                logger.info(f"row number clash on {self.sheet_name}, retrying append (attempt {attempt})")
                continue
            except SQLAlchemyError as e:
                logging.error(f"failed to append {len(rows)} row(s) to {self.sheet_name}: {e}", exc_info=True)
                raise StoreError(f"failed to append rows: {e}", stage="append_rows")
            logger.info(f"{len(rows)} row(s) appended to {self.sheet_name}")
            return

    async def _append_once(self, cells: List[List[str]]) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.scalar(
                    select(SheetRow.id)
                    .where(SheetRow.sheet_name == self.sheet_name)
                    .where(SheetRow.row_number == HEADER_ROW_NUMBER)
                    .with_for_update()
                )
                last_row = await session.scalar(
                    select(func.max(SheetRow.row_number))
                    .where(SheetRow.sheet_name == self.sheet_name)
                )
                next_row = (last_row or 0) + 1
                for offset, row in enumerate(cells):
                    session.add(SheetRow(
                        sheet_name=self.sheet_name,
                        row_number=next_row + offset,
                        cells=row,
                    ))

    async def update_row(self, row_number: int, values: List[str]) -> None:
        if row_number <= HEADER_ROW_NUMBER:
            raise StoreError(f"Row {row_number} is not a data row", stage="update_row")
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    row = await session.scalar(
                        select(SheetRow)
                        .where(SheetRow.sheet_name == self.sheet_name)
                        .where(SheetRow.row_number == row_number)
                        .with_for_update()
                    )
                    if row is None:
                        raise StoreError(f"Row {row_number} does not exist", stage="update_row")
                    row.cells = pad_row(values, 0)
        except SQLAlchemyError as e:
            logging.error(f"failed to update row {row_number} of {self.sheet_name}: {e}", exc_info=True)
            raise StoreError(f"failed to update row {row_number}: {e}", stage="update_row")

    async def ensure_headers(self, headers: List[str]) -> bool:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    existing = await session.scalar(
                        select(SheetRow.id)
                        .where(SheetRow.sheet_name == self.sheet_name)
                        .limit(1)
                    )
                    if existing is not None:
                        return False
                    session.add(SheetRow(
                        sheet_name=self.sheet_name,
                        row_number=HEADER_ROW_NUMBER,
                        cells=list(headers),
                    ))
        except SQLAlchemyError as e:
            logging.error(f"failed to write headers of {self.sheet_name}: {e}", exc_info=True)
            raise StoreError(f"failed to write headers: {e}", stage="ensure_headers")
        return True
