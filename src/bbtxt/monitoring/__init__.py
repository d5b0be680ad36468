from bbtxt.monitoring.logging import configure_logging
from bbtxt.monitoring.metrics import PipelineMetrics
from bbtxt.monitoring.stats import PeriodicStatsLogger

__all__ = [
    "configure_logging",
    "PipelineMetrics",
    "PeriodicStatsLogger",
]
