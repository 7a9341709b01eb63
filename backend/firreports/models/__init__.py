"""Database models."""

from firreports.models.accused import AccusedDetail
from firreports.models.bail import BailDetail
from firreports.models.fir_record import FirRecord

__all__ = [
    "AccusedDetail",
    "BailDetail",
    "FirRecord",
]
