"""BailDetail model: a surety standing bail for one accused."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from firreports.config import get_settings
from firreports.database import Base

settings = get_settings()


class BailDetail(Base):
    """Bail record with the surety's details; fir_id is denormalized from the accused."""

    __tablename__ = settings.bail_table

    id: Mapped[int] = mapped_column(primary_key=True)
    accused_id: Mapped[int | None] = mapped_column(Integer, index=True)
    fir_id: Mapped[int | None] = mapped_column(Integer, index=True)

    # Surety
    bailer_name: Mapped[str | None] = mapped_column(String(255))
    bailer_mobile: Mapped[str | None] = mapped_column(String(20), index=True)
    bailer_relation: Mapped[str | None] = mapped_column(String(100))
    bail_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<BailDetail {self.id}: {self.bailer_name} for accused {self.accused_id}>"
