"""Domain models for the contractor dashboard."""

from .aggregates import PersonTotal, RateBucket, SectorStat
from .config_models import DashboardConfig, HeaderStrategy, ServerConfig, SheetLayout
from .error_record import ErrorRecord
from .load_result import LoadResult, SheetStat

__all__ = [
    # Configuration models
    "DashboardConfig",
    "HeaderStrategy",
    "ServerConfig",
    "SheetLayout",
    # Load / error models
    "ErrorRecord",
    "LoadResult",
    "SheetStat",
    # Aggregate views
    "PersonTotal",
    "RateBucket",
    "SectorStat",
]
