from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class DataConfig:
    source: str | None = None
    image_root: str | None = None
    height: int = 128
    width: int = 128
    reference_size: int = 64
    batch_size: int = 16
    shuffle: bool = True
    max_boxes_per_image: int = 20
    mirror_probability: float = 0.0
    seed: int | None = None


@dataclass
class PrefetchConfig:
    queue_depth: int = 3
    producer_count: int = 1


@dataclass
class MonitoringConfig:
    json_logs: bool = False
    log_level: str = "INFO"
    stats_interval_seconds: float = 5.0
    prometheus_enabled: bool = False
    prometheus_host: str = "0.0.0.0"
    prometheus_port: int = 9109


@dataclass
class LoaderConfig:
    data: DataConfig = field(default_factory=DataConfig)
    prefetch: PrefetchConfig = field(default_factory=PrefetchConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    def as_log_context(self) -> dict[str, Any]:
        return {
            "source": self.data.source,
            "height": self.data.height,
            "width": self.data.width,
            "reference_size": self.data.reference_size,
            "batch_size": self.data.batch_size,
            "shuffle": self.data.shuffle,
            "queue_depth": self.prefetch.queue_depth,
            "producer_count": self.prefetch.producer_count,
        }
