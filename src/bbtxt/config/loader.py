from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from dynaconf import Dynaconf

from bbtxt.config.defaults import DEFAULT_CONFIG
from bbtxt.config.models import DataConfig, LoaderConfig, MonitoringConfig, PrefetchConfig
from bbtxt.errors import ConfigError
from bbtxt.utils.config_io import deep_merge, lower_keys

_CONFIG_NAMES = (
    "bbtxt.toml",
    "bbtxt.yaml",
    "bbtxt.yml",
    "bbtxt.json",
    "settings.toml",
    "settings.yaml",
    "settings.yml",
    "settings.json",
)


def _load_with_dynaconf(config_paths: list[Path]) -> dict[str, Any]:
    settings = Dynaconf(
        envvar_prefix="BBTXT",
        settings_files=[str(path) for path in config_paths],
        merge_enabled=True,
        environments=False,
        load_dotenv=True,
    )
    return lower_keys(settings.as_dict())


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _resolve_relative(path_value: str | None, repo_root: Path) -> str | None:
    if not path_value:
        return path_value
    p = Path(path_value)
    if p.is_absolute():
        return str(p)
    return str((repo_root / p).resolve())


def _require_positive(name: str, value: int) -> int:
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def _normalize(data: dict[str, Any], repo_root: Path) -> LoaderConfig:
    data_section = data.get("data", {})
    prefetch_data = data.get("prefetch", {})
    monitoring_data = data.get("monitoring", {})

    mirror_probability = float(data_section.get("mirror_probability", 0.0))
    if not 0.0 <= mirror_probability <= 1.0:
        raise ConfigError(f"mirror_probability must be within [0, 1], got {mirror_probability}")

    return LoaderConfig(
        data=DataConfig(
            source=_resolve_relative(data_section.get("source"), repo_root),
            image_root=_resolve_relative(data_section.get("image_root"), repo_root),
            height=_require_positive("height", int(data_section.get("height", 128))),
            width=_require_positive("width", int(data_section.get("width", 128))),
            reference_size=_require_positive(
                "reference_size", int(data_section.get("reference_size", 64))
            ),
            batch_size=_require_positive("batch_size", int(data_section.get("batch_size", 16))),
            shuffle=_coerce_bool(data_section.get("shuffle", True)),
            max_boxes_per_image=_require_positive(
                "max_boxes_per_image", int(data_section.get("max_boxes_per_image", 20))
            ),
            mirror_probability=mirror_probability,
            seed=_optional_int(data_section.get("seed")),
        ),
        prefetch=PrefetchConfig(
            queue_depth=max(1, int(prefetch_data.get("queue_depth", 3))),
            producer_count=max(1, int(prefetch_data.get("producer_count", 1))),
        ),
        monitoring=MonitoringConfig(
            json_logs=_coerce_bool(monitoring_data.get("json_logs", False)),
            log_level=str(monitoring_data.get("log_level", "INFO")).upper(),
            stats_interval_seconds=float(monitoring_data.get("stats_interval_seconds", 5.0)),
            prometheus_enabled=_coerce_bool(monitoring_data.get("prometheus_enabled", False)),
            prometheus_host=str(monitoring_data.get("prometheus_host", "0.0.0.0")),
            prometheus_port=int(monitoring_data.get("prometheus_port", 9109)),
        ),
    )


def _default_config_copy() -> dict[str, Any]:
    return json.loads(json.dumps(DEFAULT_CONFIG))


def load_loader_config(
    repo_root: Path,
    config_path: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> LoaderConfig:
    config_paths: list[Path] = []
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        config_paths.append(path)
    else:
        config_paths.extend(
            candidate for candidate in (repo_root / name for name in _CONFIG_NAMES) if candidate.exists()
        )

    merged = _default_config_copy()
    deep_merge(merged, _load_with_dynaconf(config_paths))

    if cli_overrides:
        deep_merge(merged, lower_keys(cli_overrides))

    return _normalize(merged, repo_root)
