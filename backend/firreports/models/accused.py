"""AccusedDetail model: one accused person entry tied to one FIR."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from firreports.config import get_settings
from firreports.database import Base

settings = get_settings()


class AccusedDetail(Base):
    """
    Accused person as entered against a FIR.

    There is no normalized person table: the same person entered on two FIRs
    appears as two rows, merged only at report time by identity fingerprint.
    """

    __tablename__ = settings.accused_table

    id: Mapped[int] = mapped_column(primary_key=True)
    # No FK constraint: FIRs may be deleted after their accused rows exist
    fir_id: Mapped[int | None] = mapped_column(Integer, index=True)

    # Identity
    name: Mapped[str | None] = mapped_column(String(255))
    mobile: Mapped[str | None] = mapped_column(String(20), index=True)
    aadhaar: Mapped[str | None] = mapped_column(String(20), index=True)
    age: Mapped[int | None] = mapped_column(Integer)

    # arrested, bailed, absconding, unknown
    accused_type: Mapped[str | None] = mapped_column(String(20))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<AccusedDetail {self.id}: {self.name} (FIR {self.fir_id})>"
