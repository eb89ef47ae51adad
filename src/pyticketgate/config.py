"""Gate, scanner and relay configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .exceptions import ConfigError, ValidationError

ENV_PREFIX = "TICKETGATE_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True, slots=True)
class ScannerConfig:
    """Keyboard-emulation barcode reader settings.

    Defaults match USB readers that emit digits within a few milliseconds
    of each other and finish with Enter.
    """

    min_length: int = 7
    max_length: int = 13
    inter_key_timeout_ms: int = 100
    debounce_ms: int = 3000
    require_terminator: bool = True
    full_length: int = 8
    allowed_lengths: tuple[int, ...] | None = None
    verify_checksum: bool = False
    terminators: tuple[str, ...] = ("Enter", "\r", "\n")
    ignored_keys: tuple[str, ...] = ("Shift", "Control", "Alt", "Meta", "CapsLock", "Tab")

    def __post_init__(self) -> None:
        if self.min_length < 1:
            raise ValidationError("min_length must be at least 1.")
        if self.max_length < self.min_length:
            raise ValidationError("max_length must not be below min_length.")
        if self.inter_key_timeout_ms < 0 or self.debounce_ms < 0:
            raise ValidationError("Scanner timings cannot be negative.")
        if self.full_length < 1:
            raise ValidationError("full_length must be at least 1.")
        if self.require_terminator and not self.terminators:
            raise ValidationError("terminators are required when require_terminator is set.")


@dataclass(frozen=True, slots=True)
class RelayConfig:
    enabled: bool = True
    relay_id: str | None = None
    endpoint: str | None = None
    duration_ms: int = 5000
    timeout_s: float = 2.0
    retry_count: int = 0

    def __post_init__(self) -> None:
        if self.duration_ms <= 0:
            raise ValidationError("duration_ms must be positive.")
        if self.timeout_s <= 0:
            raise ValidationError("timeout_s must be positive.")
        if self.retry_count < 0:
            raise ValidationError("retry_count cannot be negative.")
        if self.endpoint is not None and not self.endpoint.strip():
            raise ValidationError("endpoint must be a non-empty string.")

    @property
    def resolved_relay_id(self) -> str:
        if self.relay_id:
            return self.relay_id
        return "http" if self.endpoint else "mock"


@dataclass(frozen=True, slots=True)
class GateConfig:
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    relay: RelayConfig = field(default_factory=RelayConfig)
    timezone: str | None = None
    max_conflict_retries: int = 3

    def __post_init__(self) -> None:
        if self.max_conflict_retries < 0:
            raise ValidationError("max_conflict_retries cannot be negative.")
        if self.timezone is not None:
            _load_zone(self.timezone)

    @property
    def tzinfo(self) -> tzinfo | None:
        if self.timezone is None:
            return None
        return _load_zone(self.timezone)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GateConfig:
        """Build a configuration from ``TICKETGATE_*`` environment variables."""
        env = os.environ if environ is None else environ
        scanner_defaults = ScannerConfig()
        relay_defaults = RelayConfig()
        try:
            scanner = ScannerConfig(
                min_length=_env_int(env, "SCANNER_MIN_LENGTH", scanner_defaults.min_length),
                max_length=_env_int(env, "SCANNER_MAX_LENGTH", scanner_defaults.max_length),
                inter_key_timeout_ms=_env_int(
                    env, "SCANNER_TIMEOUT_MS", scanner_defaults.inter_key_timeout_ms
                ),
                debounce_ms=_env_int(env, "SCANNER_DEBOUNCE_MS", scanner_defaults.debounce_ms),
                require_terminator=_env_bool(
                    env, "SCANNER_REQUIRE_TERMINATOR", scanner_defaults.require_terminator
                ),
            )
            relay = RelayConfig(
                enabled=_env_bool(env, "RELAY_ENABLED", relay_defaults.enabled),
                relay_id=_env_str(env, "RELAY_ID"),
                endpoint=_env_str(env, "RELAY_ENDPOINT"),
                duration_ms=_env_int(env, "RELAY_DURATION_MS", relay_defaults.duration_ms),
                timeout_s=_env_float(env, "RELAY_TIMEOUT_S", relay_defaults.timeout_s),
                retry_count=_env_int(env, "RELAY_RETRY_COUNT", relay_defaults.retry_count),
            )
            return cls(scanner=scanner, relay=relay, timezone=_env_str(env, "TIMEZONE"))
        except ValidationError as exc:
            raise ConfigError(f"Invalid environment configuration: {exc}") from exc


def _load_zone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone: {name}.") from exc


def _env_str(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(f"{ENV_PREFIX}{name}")
    if value is None:
        return None
    value = value.strip()
    return value or None


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    value = _env_str(env, name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer.") from exc


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    value = _env_str(env, name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name} must be a number.") from exc


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = _env_str(env, name)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{ENV_PREFIX}{name} must be a boolean.")
