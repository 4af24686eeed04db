from typing import List
from sqlalchemy import JSON, BigInteger, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base
from app.db.models import TimestampMixin


class SheetRow(Base, TimestampMixin):
    """
    One spreadsheet row. Row 1 of every sheet holds the headers.
    """
    __table_args__ = (UniqueConstraint("sheet_name", "row_number"),)

    # sqlite only autoincrements INTEGER primary keys
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    sheet_name: Mapped[str] = mapped_column(
        String(255), nullable=False, index=True)
    row_number: Mapped[int] = mapped_column(Integer, nullable=False)
    cells: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
