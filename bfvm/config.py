"""
VM configuration.

Values are layered, later sources winning:
  1) VMConfig defaults
  2) a YAML file, either a flat mapping or nested under a top-level `vm:` key
  3) environment variables (BFVM_TAPE_LENGTH, BFVM_CELL_MAX, BFVM_STEP_LIMIT,
     BFVM_SKIP_SCAN, BFVM_PRECOMPILE), with a .env file loaded first
  4) explicit overrides passed by the caller (the CLI flags)
"""

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_TAPE_LENGTH = 30000
DEFAULT_CELL_MAX = 255

SKIP_SCAN_NESTED = "nested"
SKIP_SCAN_LEGACY = "legacy"
SKIP_SCAN_MODES = (SKIP_SCAN_NESTED, SKIP_SCAN_LEGACY)

ENV_PREFIX = "BFVM_"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class VMConfig:
    tape_length: int = DEFAULT_TAPE_LENGTH
    cell_max: int = DEFAULT_CELL_MAX
    step_limit: Optional[int] = None
    skip_scan: str = SKIP_SCAN_NESTED
    precompile: bool = False

    def __post_init__(self):
        if self.tape_length < 1:
            raise ConfigError(f"tape_length must be at least 1, got {self.tape_length}")
        if self.cell_max < 1:
            raise ConfigError(f"cell_max must be at least 1, got {self.cell_max}")
        if self.step_limit is not None and self.step_limit < 1:
            raise ConfigError(f"step_limit must be positive or unset, got {self.step_limit}")
        if self.skip_scan not in SKIP_SCAN_MODES:
            raise ConfigError(f"skip_scan must be one of {SKIP_SCAN_MODES}, got {self.skip_scan!r}")

    def merged(self, overrides: Mapping[str, Any]) -> "VMConfig":
        """Return a copy with the non-None overrides applied and coerced."""
        known = {f.name for f in fields(self)}
        changes: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in known:
                raise ConfigError(f"unknown configuration key {key!r}")
            if value is None:
                continue
            changes[key] = _coerce(key, value)
        return replace(self, **changes)


def _coerce(key: str, value: Any) -> Any:
    try:
        if key in ("tape_length", "cell_max", "step_limit"):
            if isinstance(value, bool) or not isinstance(value, (int, str)):
                raise ValueError(value)
            return int(value)
        if key == "precompile":
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in ("1", "true", "yes", "on"):
                return True
            if text in ("0", "false", "no", "off", ""):
                return False
            raise ValueError(value)
        if key == "skip_scan":
            return str(value).strip().lower()
    except (TypeError, ValueError):
        raise ConfigError(f"invalid value for {key}: {value!r}") from None
    return value


def load_yaml_config(path: str) -> Dict[str, Any]:
    """Read a YAML config file into a plain mapping of VMConfig fields."""
    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    if "vm" in data:
        data = data["vm"] or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: 'vm' must be a mapping")
    return dict(data)


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    out: Dict[str, Any] = {}
    for f in fields(VMConfig):
        value = environ.get(ENV_PREFIX + f.name.upper())
        if value is not None and value != "":
            out[f.name] = value
    return out


def load_config(path: Optional[str] = None,
                overrides: Optional[Mapping[str, Any]] = None,
                environ: Optional[Mapping[str, str]] = None,
                use_dotenv: bool = True) -> VMConfig:
    """Build a VMConfig from defaults, YAML file, environment and overrides."""
    if use_dotenv and environ is None:
        load_dotenv()

    cfg = VMConfig()
    if path:
        cfg = cfg.merged(load_yaml_config(path))
    cfg = cfg.merged(env_overrides(environ))
    if overrides:
        cfg = cfg.merged(overrides)
    return cfg
