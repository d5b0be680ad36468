from __future__ import annotations


DEFAULT_CONFIG: dict = {
    "data": {
        "source": None,
        "image_root": None,
        "height": 128,
        "width": 128,
        "reference_size": 64,
        "batch_size": 16,
        "shuffle": True,
        "max_boxes_per_image": 20,
        "mirror_probability": 0.0,
        "seed": None,
    },
    "prefetch": {
        "queue_depth": 3,
        "producer_count": 1,
    },
    "monitoring": {
        "json_logs": False,
        "log_level": "INFO",
        "stats_interval_seconds": 5.0,
        "prometheus_enabled": False,
        "prometheus_host": "0.0.0.0",
        "prometheus_port": 9109,
    },
}
