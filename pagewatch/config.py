"""
Configuration for pagewatch.

Daemon settings come from environment variables with the PAGEWATCH_ prefix.
Resources come from a JSON, TOML or YAML file validated by pydantic models.
"""

import json
import math
import re
import tomllib
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from pagewatch.exceptions import ConfigError, PathEvaluationError
from pagewatch.extraction.path_evaluator import compile_path
from pagewatch.models import ContinuationRule, ExtractionRule, ResourceConfig, TargetNode
from pagewatch.utils.url_utils import is_valid_url


class DedupBackend(str, Enum):
    """Storage backend of the dedup store."""

    SQLITE = "sqlite"
    REDIS = "redis"


class LogFormat(str, Enum):
    """Log output format."""

    JSON = "json"
    CONSOLE = "console"


class WatcherSettings(BaseSettings):
    """Main settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PAGEWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Resources
    config_path: str = "./config"

    # Dedup store
    dedup_backend: DedupBackend = DedupBackend.SQLITE
    database_path: str = "./pagewatch.sqlite"
    redis_url: str = "redis://localhost:6379/0"

    # Fetching
    user_agent: str = "pagewatch/0.1 (+https://github.com/pagewatch/pagewatch)"
    request_timeout_seconds: float = 30.0
    max_page_size_mb: float = 10.0
    max_redirects: int = 10
    verify_ssl: bool = True

    # Output
    output_path: str = ""  # Empty = log records, "-" = stdout

    # Scheduler
    shutdown_grace_seconds: float = 10.0

    # Metrics
    metrics_port: int = 0  # 0 = disabled

    # Logging
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.JSON
    log_file: str = ""  # Empty = stderr only


def load_settings(**overrides: Any) -> WatcherSettings:
    """Load settings from the environment, applying non-None overrides."""
    return WatcherSettings(**{k: v for k, v in overrides.items() if v is not None})


# =============================================================================
# Periods
# =============================================================================

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|us|h|m|s|d)", re.IGNORECASE)
_DURATION_UNITS = {
    "d": timedelta(days=1),
    "h": timedelta(hours=1),
    "m": timedelta(minutes=1),
    "s": timedelta(seconds=1),
    "ms": timedelta(milliseconds=1),
    "us": timedelta(microseconds=1),
}


class PeriodParts(BaseModel):
    """Period given as {secs, nanos}."""

    model_config = ConfigDict(extra="forbid")

    secs: StrictInt = Field(default=0, ge=0)
    nanos: StrictInt = Field(default=0, ge=0, lt=1_000_000_000)


def _duration_from_string(raw: str) -> timedelta:
    text = raw.strip().replace(" ", "")
    try:
        return timedelta(seconds=float(text))
    except ValueError:
        pass

    total = timedelta(0)
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2).lower()]
        position = match.end()
    if position != len(text) or not text:
        raise ValueError(f"invalid duration {raw!r}")
    return total


def coerce_period(raw: Any) -> timedelta:
    """
    Convert a configured period to a timedelta.

    Accepts seconds as a number, a duration string such as "90s", "5m",
    "1h30m" or "250ms", or a mapping with "secs" and "nanos".

    Raises:
        ValueError: If the value is malformed, out of range or not positive.
    """
    if isinstance(raw, bool):
        raise ValueError("must be a duration")

    try:
        if isinstance(raw, (int, float)):
            if not math.isfinite(raw):
                raise ValueError(f"must be finite, got {raw!r}")
            period = timedelta(seconds=raw)
        elif isinstance(raw, str):
            period = _duration_from_string(raw)
        elif isinstance(raw, dict):
            try:
                parts = PeriodParts.model_validate(raw)
            except ValidationError as e:
                first = e.errors()[0]
                raise ValueError(f"{_format_location(first['loc'])}: {first['msg']}") from None
            period = timedelta(seconds=parts.secs, microseconds=parts.nanos / 1000)
        else:
            raise ValueError("must be a duration")
    except OverflowError:
        raise ValueError(f"out of range: {raw!r}") from None

    if period <= timedelta(0):
        raise ValueError(f"must be positive, got {raw!r}")
    return period


def parse_period(raw: Any, location: str = "period") -> timedelta:
    """
    Parse a polling period.

    Raises:
        ConfigError: If the value is malformed or not positive.
    """
    try:
        return coerce_period(raw)
    except ValueError as e:
        raise ConfigError(str(e), location) from None


# =============================================================================
# Resource file schema
# =============================================================================


def _check_xpath(expression: str) -> str:
    try:
        compile_path(expression)
    except PathEvaluationError as e:
        raise ValueError(f"failed to parse XPath: {e}") from None
    return expression


def _check_target_name(name: str) -> str:
    if not name:
        raise ValueError("target name must be a non-empty string")
    if name.startswith("$"):
        raise ValueError(f"target name {name!r} must not start with '$'")
    return name


class TargetSpec(BaseModel):
    """A child target; named by its key in the parent's "then" mapping."""

    model_config = ConfigDict(extra="forbid")

    path: str
    extract: ExtractionRule | None = None
    then: dict[str, "TargetSpec"] | None = None

    @field_validator("path")
    @classmethod
    def _validate_path(cls, value: str) -> str:
        return _check_xpath(value)

    @field_validator("extract", mode="before")
    @classmethod
    def _parse_extract(cls, value: Any) -> Any:
        if value is None or isinstance(value, ExtractionRule):
            return value
        return ExtractionRule.parse(str(value))

    @field_validator("then")
    @classmethod
    def _validate_child_names(cls, value: dict[str, "TargetSpec"] | None) -> Any:
        for name in value or {}:
            _check_target_name(name)
        return value

    def to_node(self, name: str) -> TargetNode:
        then = None
        if self.then is not None:
            then = {child: target.to_node(child) for child, target in self.then.items()}
        return TargetNode(name=name, path=self.path, extract=self.extract, then=then)


class RootTargetSpec(TargetSpec):
    """The root target of a resource, which carries its own name."""

    name: str

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return _check_target_name(value)


class ContinuationSpec(BaseModel):
    """Pagination rule."""

    model_config = ConfigDict(extra="forbid")

    ref: str

    @field_validator("ref")
    @classmethod
    def _validate_ref(cls, value: str) -> str:
        return _check_xpath(value)


class ResourceSpec(BaseModel):
    """One entry of the "resources" list."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    url: str
    period: timedelta
    targets: RootTargetSpec | None = None
    continuation: ContinuationSpec | None = None

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        if not is_valid_url(value):
            raise ValueError(f"invalid url {value!r} (http, https or file required)")
        return value

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str | None) -> str | None:
        if value is not None and not value:
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("period", mode="before")
    @classmethod
    def _parse_period(cls, value: Any) -> timedelta:
        return coerce_period(value)

    def to_resource(self) -> ResourceConfig:
        return ResourceConfig(
            name=self.name or self.url,
            url=self.url,
            period=self.period,
            targets=self.targets.to_node(self.targets.name) if self.targets else None,
            continuation=ContinuationRule(ref=self.continuation.ref) if self.continuation else None,
        )


class ResourceFile(BaseModel):
    """Top level of a resource file."""

    model_config = ConfigDict(extra="forbid")

    resources: list[ResourceSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_unique_names(self) -> "ResourceFile":
        names = [resource.name or resource.url for resource in self.resources]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate resource names: {', '.join(duplicates)}")
        return self


def _format_location(loc: tuple[Any, ...]) -> str:
    location = ""
    for part in loc:
        if isinstance(part, int):
            location += f"[{part}]"
        else:
            location += f".{part}" if location else str(part)
    return location


def _to_config_error(error: ValidationError) -> ConfigError:
    details = error.errors()
    first = details[0]
    message = first["msg"]
    if len(details) > 1:
        message += f" (and {len(details) - 1} more errors)"
    return ConfigError(message, _format_location(first["loc"]) or None)


def parse_resources(raw: Any) -> list[ResourceConfig]:
    """
    Validate a parsed resource document.

    Raises:
        ConfigError: Naming the location of the first problem.
    """
    try:
        document = ResourceFile.model_validate(raw)
    except ValidationError as e:
        raise _to_config_error(e) from None
    return [entry.to_resource() for entry in document.resources]


# =============================================================================
# Resource files
# =============================================================================

CONFIG_SUFFIXES = (".toml", ".yaml", ".yml", ".json")


@dataclass
class AppConfig:
    """Parsed resource file."""

    source: Path
    resources: list[ResourceConfig] = field(default_factory=list)


def find_config_file(path: str | Path) -> Path:
    """
    Locate a resource file.

    A path without a suffix is looked up as .toml, .yaml, .yml and .json.

    Raises:
        ConfigError: If no file is found.
    """
    path = Path(path)
    if path.suffix and path.is_file():
        return path
    if not path.suffix:
        for suffix in CONFIG_SUFFIXES:
            candidate = path.with_suffix(suffix)
            if candidate.is_file():
                return candidate
    raise ConfigError(f"no configuration file found at {path}")


def read_config_file(path: Path) -> Any:
    """
    Parse a resource file according to its suffix.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read configuration: {e}", str(path)) from e

    try:
        if suffix == ".json":
            return json.loads(text)
        if suffix == ".toml":
            return tomllib.loads(text)
        if suffix in (".yaml", ".yml"):
            return yaml.safe_load(text)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot parse configuration: {e}", str(path)) from e

    raise ConfigError(f"unsupported configuration format {suffix!r}", str(path))


def load_config(path: str | Path) -> AppConfig:
    """
    Load and validate a resource file.

    Args:
        path: File path, with or without suffix.

    Returns:
        Parsed configuration.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    source = find_config_file(path)
    raw = read_config_file(source)
    return AppConfig(source=source, resources=parse_resources(raw))
