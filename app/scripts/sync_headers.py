"""
Write the ticket header row to an empty sheet, or report how an existing
header row differs from the columns the webhook writes.

Run with: python -m app.scripts.sync_headers
"""
import asyncio
from typing import List

from app.core.config import settings
from app.schemas.ticket_record import SHEET_HEADERS
from app.stores import SheetStore, get_sheet_store


def header_drift(current: List[str], expected: List[str]) -> List[str]:
    problems = []
    for position, header in enumerate(expected):
        actual = current[position] if position < len(current) else None
        if actual != header:
            problems.append(f"column {position + 1}: expected {header!r}, found {actual!r}")
    for position in range(len(expected), len(current)):
        problems.append(f"column {position + 1}: unexpected extra header {current[position]!r}")
    return problems


async def sync_headers(store: SheetStore) -> List[str]:
    if await store.ensure_headers(SHEET_HEADERS):
        print(f"Wrote {len(SHEET_HEADERS)} headers to {settings.SHEET_NAME}")
        return []

    problems = header_drift(await store.get_headers(), SHEET_HEADERS)
    if problems:
        print(f"Header row of {settings.SHEET_NAME} differs from the expected layout:")
        for problem in problems:
            print(f"  {problem}")
    else:
        print(f"Header row of {settings.SHEET_NAME} is up to date")
    return problems


async def main():
    if settings.STORE_BACKEND == "sql":
        from app.db.session import init_db
        await init_db()
    await sync_headers(get_sheet_store())


if __name__ == "__main__":
    asyncio.run(main())
