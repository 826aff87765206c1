"""Configuration controller for YAML-based remediation settings."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any

import yaml


CONFIG_ENV_VAR = "SEARCHDOCTOR_CONFIG"


@dataclass(frozen=True)
class ConfigPaths:
    """Filesystem paths for configuration files."""

    config_dir: Path
    config_file: Path
    override_file: Path
    extra_file: Path | None


class ConfigController:
    """Singleton controller for loading remediation configuration."""

    _instance: "ConfigController | None" = None

    def __init__(self, config_dir: Path | None = None, config_file: str = "default.yaml") -> None:
        if ConfigController._instance is not None:
            raise RuntimeError("You cannot create another ConfigController class")

        config_dir = config_dir if config_dir is not None else Path(__file__).resolve().parent
        extra = os.environ.get(CONFIG_ENV_VAR)
        self.paths = ConfigPaths(
            config_dir=config_dir,
            config_file=config_dir / config_file,
            override_file=config_dir / "override.yaml",
            extra_file=Path(extra).expanduser() if extra else None,
        )
        self.config: dict[str, Any] = {}
        self.load_config()
        ConfigController._instance = self

    @classmethod
    def get_instance(cls, config_dir: Path | None = None) -> "ConfigController":
        """Return the singleton instance of the controller."""

        if cls._instance is None:
            cls._instance = cls(config_dir=config_dir)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the singleton so the next access reloads from disk."""

        cls._instance = None

    def load_config(self) -> None:
        """Load configuration from default, override and environment YAML files."""

        config = self._read_yaml(self.paths.config_file)
        for path in (self.paths.override_file, self.paths.extra_file):
            if path is not None and path.exists():
                override_config = self._read_yaml(path)
                if override_config:
                    config = self._deep_merge(config, override_config)

        self.config = self._normalize_config(config)

    def get_config(self) -> dict[str, Any]:
        """Return the currently loaded configuration."""

        return dict(self.config)

    def get_section(self, name: str) -> dict[str, Any]:
        """Return a copy of one normalized configuration section."""

        return dict(self.config.get(name) or {})

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        with path.open("r", encoding="utf-8") as file:
            loaded = yaml.safe_load(file) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        return loaded

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge dictionaries, overriding base values with override values."""

        merged = dict(base)
        for key, value in override.items():
            if (
                key in merged
                and isinstance(merged[key], dict)
                and isinstance(value, dict)
            ):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _normalize_config(self, config: dict[str, Any]) -> dict[str, Any]:
        """Fill in typed defaults for every section the tool reads."""

        normalized = dict(config)
        normalized["logging_level"] = str(normalized.get("logging_level", "INFO")).upper()
        normalized["file_logging_enabled"] = bool(normalized.get("file_logging_enabled", False))
        normalized["log_file"] = str(normalized.get("log_file", "./log/searchdoctor.log"))

        service_cfg = dict(normalized.get("service") or {})
        service_cfg["name"] = str(service_cfg.get("name", "WSearch"))
        service_cfg["stop_timeout_s"] = float(service_cfg.get("stop_timeout_s", 30.0))
        service_cfg["start_timeout_s"] = float(service_cfg.get("start_timeout_s", 30.0))
        service_cfg["command_timeout_s"] = float(service_cfg.get("command_timeout_s", 60.0))
        normalized["service"] = service_cfg

        index_cfg = dict(normalized.get("index") or {})
        index_cfg["base_env"] = str(index_cfg.get("base_env", "PROGRAMDATA"))
        index_cfg["base_default"] = str(index_cfg.get("base_default", "C:\\ProgramData"))
        index_cfg["relative_root"] = str(
            index_cfg.get("relative_root", "Microsoft/Search/Data/Applications/Windows")
        )
        index_cfg["primary_file"] = str(index_cfg.get("primary_file", "Windows.edb"))
        index_cfg["log_pattern"] = str(index_cfg.get("log_pattern", "MSS*.log"))
        normalized["index"] = index_cfg

        startup_cfg = dict(normalized.get("startup") or {})
        startup_cfg["registry_key"] = str(
            startup_cfg.get("registry_key", "SYSTEM\\CurrentControlSet\\Services\\{name}")
        )
        normalized["startup"] = startup_cfg

        repair_cfg = dict(normalized.get("repair") or {})
        repair_cfg["troubleshooting_pack"] = str(
            repair_cfg.get("troubleshooting_pack", "%SystemRoot%\\diagnostics\\system\\Search")
        )
        repair_cfg["timeout_s"] = float(repair_cfg.get("timeout_s", 300.0))
        normalized["repair"] = repair_cfg

        remediation_cfg = dict(normalized.get("remediation") or {})
        remediation_cfg["consult_diagnostics"] = bool(
            remediation_cfg.get("consult_diagnostics", True)
        )
        remediation_cfg["force_stop"] = bool(remediation_cfg.get("force_stop", False))
        remediation_cfg["allow_escalation"] = bool(
            remediation_cfg.get("allow_escalation", False)
        )
        normalized["remediation"] = remediation_cfg
        return normalized
