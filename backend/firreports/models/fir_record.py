"""FirRecord model: read-side mapping of the FIR table."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from firreports.config import get_settings
from firreports.database import Base

settings = get_settings()


class FirRecord(Base):
    """
    First Information Report, the primary case record.

    Created by the case-entry workflows of the hosted backend; read-only here.
    District and thana are stored denormalized as names.
    """

    __tablename__ = settings.fir_table

    id: Mapped[int] = mapped_column(primary_key=True)
    fir_number: Mapped[str | None] = mapped_column(String(50))

    # Administrative
    district_name: Mapped[str | None] = mapped_column(String(100), index=True)
    thana_name: Mapped[str | None] = mapped_column(String(100), index=True)

    # Case
    case_status: Mapped[str | None] = mapped_column(String(30))
    complainant_name: Mapped[str | None] = mapped_column(String(255))

    # Timestamps
    incident_date: Mapped[date | None] = mapped_column(Date, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_fir_created", created_at.desc(), id.desc()),
    )

    def __repr__(self) -> str:
        return f"<FirRecord {self.fir_number}: {self.district_name}/{self.thana_name}>"
