from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional
import logging
import os

import yaml


class ConfigError(ValueError):
    """Raised when configuration is missing or invalid."""


_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def _parse_level(value: Any) -> int:
    if isinstance(value, int):
        return value
    level = _LEVELS.get(str(value).strip().upper())
    if level is None:
        raise ConfigError(f"Unknown log level: {value!r}")
    return level


def _parse_probability(value: Any) -> float:
    try:
        p = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"chaos_probability must be a number, got {value!r}") from exc
    if not 0.0 <= p <= 1.0:
        raise ConfigError(f"chaos_probability must be within [0, 1], got {p}")
    return p


@dataclass(frozen=True)
class DieConfig:
    """
    Runtime configuration for chaos injection and diagnostic logging.

    Parameters
    ----------
    chaos_probability
        Chance that :class:`die.chaos.ChaosMonkey` replaces an error.
    chaos_seed
        Seed for the chaos generator. ``None`` seeds from the OS.
    console_level
        Logging level for console diagnostics.
    file_level
        Logging level for the diagnostic log file.
    log_path
        Diagnostic log file. ``None`` disables file logging.
    env_prefix
        Prefix for environment-variable overrides, e.g. "DIE_".

    Usage example
    -------------
        cfg = DieConfig(chaos_probability=0.1, log_path=Path("logs/die.log"))
    """

    chaos_probability: float = 0.5
    chaos_seed: Optional[int] = None

    console_level: int = 20  # logging.INFO
    file_level: int = 10  # logging.DEBUG
    log_path: Optional[Path] = None

    env_prefix: str = field(default="", repr=False)

    @classmethod
    def from_env(cls, *, default: Optional["DieConfig"] = None) -> "DieConfig":
        """
        Create config from environment variables.

        Supported variables (prefix controlled by env_prefix on `default`):
        - <PFX>CHAOS_PROBABILITY: float in [0, 1]
        - <PFX>CHAOS_SEED: integer
        - <PFX>LOG_PATH: path
        - <PFX>LOG_LEVEL: console level name

        Invalid values fall back to `default`.

        Usage example
        -------------
            cfg = DieConfig.from_env(default=DieConfig(env_prefix="DIE_"))
        """
        base = default if default is not None else cls()
        pfx = base.env_prefix

        chaos_probability = base.chaos_probability
        raw = os.getenv(f"{pfx}CHAOS_PROBABILITY", "").strip()
        if raw:
            try:
                chaos_probability = _parse_probability(raw)
            except ConfigError:
                chaos_probability = base.chaos_probability

        chaos_seed = base.chaos_seed
        raw = os.getenv(f"{pfx}CHAOS_SEED", "").strip()
        if raw:
            try:
                chaos_seed = int(raw)
            except ValueError:
                chaos_seed = base.chaos_seed

        console_level = base.console_level
        raw = os.getenv(f"{pfx}LOG_LEVEL", "").strip()
        if raw:
            try:
                console_level = _parse_level(raw)
            except ConfigError:
                console_level = base.console_level

        raw = os.getenv(f"{pfx}LOG_PATH", "").strip()
        log_path = Path(raw) if raw else base.log_path

        return cls(
            chaos_probability=chaos_probability,
            chaos_seed=chaos_seed,
            console_level=console_level,
            file_level=base.file_level,
            log_path=log_path,
            env_prefix=pfx,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DieConfig":
        """Build config from a plain mapping (e.g. the ``die:`` section of a YAML file)."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        kwargs: dict[str, Any] = {}
        if "chaos_probability" in data:
            kwargs["chaos_probability"] = _parse_probability(data["chaos_probability"])
        if data.get("chaos_seed") is not None:
            try:
                kwargs["chaos_seed"] = int(data["chaos_seed"])
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"chaos_seed must be an integer, got {data['chaos_seed']!r}") from exc
        for key in ("console_level", "file_level"):
            if key in data:
                kwargs[key] = _parse_level(data[key])
        if data.get("log_path"):
            kwargs["log_path"] = Path(str(data["log_path"]))
        if "env_prefix" in data:
            kwargs["env_prefix"] = str(data["env_prefix"] or "")
        return cls(**kwargs)


def load_config(root: Path) -> DieConfig:
    """
    Load config from a directory if a config file is present.

    Search order:
    1) ``die.yaml``
    2) ``config.yaml`` (its ``die:`` section)

    Returns the defaults when neither file exists.
    """

    for filename in ("die.yaml", "config.yaml"):
        config_path = root / filename
        if not config_path.exists():
            continue
        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Could not parse {config_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping")
        section = data.get("die", {} if filename == "config.yaml" else data)
        if section is None:
            section = {}
        if not isinstance(section, dict):
            raise ConfigError(f"'die' section in {config_path} must be a mapping")
        return DieConfig.from_mapping(section)
    return DieConfig()
