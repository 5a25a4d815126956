"""
Pydantic schema for one normalized crime record
"""

from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime


class Record(BaseModel):
    """
    One observation mapped from a 14-column source row.

    Optional numeric fields are ``None`` when the source had no value, which
    keeps "not recorded" apart from a recorded zero. Records are immutable;
    the mapper builds one per row and the loader only reads it.
    """

    address: str = ""
    case_number: str = ""
    crime_against: str = ""
    neighborhood: str = ""
    occur_datetime: Optional[datetime] = None
    offense_category: str = ""
    offense_type: str = ""
    open_data_lat: Optional[float] = None
    open_data_lon: Optional[float] = None
    open_data_x: Optional[float] = None
    open_data_y: Optional[float] = None
    report_date: Optional[datetime] = None
    offense_count: Optional[int] = None

    class Config:
        frozen = True

    @classmethod
    def empty(cls) -> "Record":
        """The zero-valued record returned for rows of the wrong shape"""
        return cls()

    @property
    def is_empty(self) -> bool:
        return self == _EMPTY

    def to_row(self) -> Dict[str, Any]:
        """Column values as written to a crime record table"""
        return self.model_dump()


_EMPTY = Record()
