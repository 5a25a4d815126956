"""
Pydantic schemas describing refresh cycle outcomes
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from uuid import UUID, uuid4
from models.base import RefreshStatus


class RefreshResult(BaseModel):
    """Outcome and counters of one refresh cycle"""

    run_id: UUID = Field(default_factory=uuid4)
    status: RefreshStatus
    target_table: str
    started_at: datetime
    completed_at: datetime
    duration_seconds: float = 0.0

    rows_fetched: int = 0
    records_loaded: int = 0
    records_discarded: int = 0
    rows_per_source: Dict[str, int] = Field(default_factory=dict)

    promoted_at: Optional[datetime] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == RefreshStatus.SUCCESS

    def summary(self) -> Dict[str, Any]:
        """Flat key/value view used as structured log context"""
        return {
            "run_id": str(self.run_id),
            "status": self.status.value,
            "target_table": self.target_table,
            "duration_seconds": round(self.duration_seconds, 3),
            "rows_fetched": self.rows_fetched,
            "records_loaded": self.records_loaded,
            "records_discarded": self.records_discarded,
            "error_type": self.error_type,
        }
