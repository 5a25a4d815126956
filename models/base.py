from sqlalchemy import MetaData
import enum

metadata = MetaData()


# ============================================================================
# ENUMS
# ============================================================================

class RefreshState(str, enum.Enum):
    """Refresh coordinator state"""
    IDLE = "idle"
    FETCHING = "fetching"
    LOADING = "loading"
    PROMOTING = "promoting"
    FAILED = "failed"


class RefreshStatus(str, enum.Enum):
    """Outcome of one refresh cycle"""
    SUCCESS = "success"
    FAILED = "failed"
