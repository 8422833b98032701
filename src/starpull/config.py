"""
Configuration for starpull.

Provides:
- PullConfig: traversal engine settings
- SPARQLEndpointConfig: remote endpoint connection settings
- Loading from dicts and STARPULL_* environment variables
- Configuration validation
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "STARPULL_"


class ConfigValidationError(ValueError):
    """Raised when configuration values are invalid."""
    pass


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class PullConfig:
    """
    Pull engine configuration.

    Attributes:
        max_concurrent_lookups: Upper bound on graph lookups in flight
        strict_constraints: Treat every (predicate, value) constraint as a
            required filter on its subject, even next to other specifiers
        cache_lookups: Reuse (subject, predicate) lookups within one call
    """
    max_concurrent_lookups: int = 8
    strict_constraints: bool = False
    cache_lookups: bool = True

    def validate(self) -> List[str]:
        errors = []
        if self.max_concurrent_lookups < 1:
            errors.append("max_concurrent_lookups must be at least 1")
        return errors

    def ensure_valid(self) -> "PullConfig":
        """Raise ConfigValidationError unless validate() is clean."""
        _raise_if_invalid(self)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_concurrent_lookups": self.max_concurrent_lookups,
            "strict_constraints": self.strict_constraints,
            "cache_lookups": self.cache_lookups,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PullConfig":
        config = cls(
            max_concurrent_lookups=_convert(int, data, "max_concurrent_lookups", 8),
            strict_constraints=bool(data.get("strict_constraints", False)),
            cache_lookups=bool(data.get("cache_lookups", True)),
        )
        return config.ensure_valid()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PullConfig":
        environ = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        if f"{ENV_PREFIX}MAX_CONCURRENT_LOOKUPS" in environ:
            data["max_concurrent_lookups"] = environ[f"{ENV_PREFIX}MAX_CONCURRENT_LOOKUPS"]
        if f"{ENV_PREFIX}STRICT_CONSTRAINTS" in environ:
            data["strict_constraints"] = _env_bool(environ[f"{ENV_PREFIX}STRICT_CONSTRAINTS"])
        if f"{ENV_PREFIX}CACHE_LOOKUPS" in environ:
            data["cache_lookups"] = _env_bool(environ[f"{ENV_PREFIX}CACHE_LOOKUPS"])
        return cls.from_dict(data)


@dataclass
class SPARQLEndpointConfig:
    """Connection settings for a remote SPARQL endpoint."""
    url: str
    timeout_seconds: float = 30.0
    auth_token: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> List[str]:
        errors = []
        if not self.url.startswith(("http://", "https://")):
            errors.append(f"url must be http(s), got {self.url!r}")
        if self.timeout_seconds <= 0:
            errors.append("timeout_seconds must be positive")
        return errors

    def request_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/sparql-results+json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        headers.update(self.headers)
        return headers

    def ensure_valid(self) -> "SPARQLEndpointConfig":
        _raise_if_invalid(self)
        return self

    def to_dict(self) -> Dict[str, Any]:
        # auth_token intentionally left out
        return {
            "url": self.url,
            "timeout_seconds": self.timeout_seconds,
            "headers": dict(self.headers),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SPARQLEndpointConfig":
        if "url" not in data:
            raise ConfigValidationError("url is required")
        config = cls(
            url=data["url"],
            timeout_seconds=_convert(float, data, "timeout_seconds", 30.0),
            auth_token=data.get("auth_token"),
            headers=dict(data.get("headers", {})),
        )
        return config.ensure_valid()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SPARQLEndpointConfig":
        environ = os.environ if environ is None else environ
        url = environ.get(f"{ENV_PREFIX}SPARQL_URL")
        if not url:
            raise ConfigValidationError(f"{ENV_PREFIX}SPARQL_URL is not set")
        data: Dict[str, Any] = {"url": url}
        if f"{ENV_PREFIX}SPARQL_TIMEOUT" in environ:
            data["timeout_seconds"] = environ[f"{ENV_PREFIX}SPARQL_TIMEOUT"]
        if f"{ENV_PREFIX}SPARQL_TOKEN" in environ:
            data["auth_token"] = environ[f"{ENV_PREFIX}SPARQL_TOKEN"]
        return cls.from_dict(data)


def _raise_if_invalid(config) -> None:
    errors = config.validate()
    if errors:
        logger.warning(f"Invalid {type(config).__name__}: {errors}")
        raise ConfigValidationError("; ".join(errors))


def _convert(kind, data: Mapping[str, Any], key: str, default: Any) -> Any:
    value = data.get(key, default)
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid value for {key}: {value!r}")
        raise ConfigValidationError(f"{key} must be {kind.__name__}, got {value!r}") from e
