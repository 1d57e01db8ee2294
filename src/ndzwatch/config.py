"""Monitor configuration for ndzwatch."""

from __future__ import annotations

import dataclasses
import os
from datetime import timedelta
from typing import Any

from ndzwatch._constants import (
    DRONES_URL,
    NDZ_CENTER_X,
    NDZ_CENTER_Y,
    NDZ_RADIUS,
    PILOTS_URL,
    POLL_INTERVAL_SECONDS,
    STALE_AFTER_SECONDS,
)
from ndzwatch.exceptions import NdzConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class NdzConfig:
    """Monitor configuration.

    Parameters
    ----------
    drones_url : str
        Endpoint returning the XML drone report.
    pilots_url : str
        Base endpoint for pilot lookups; the drone serial number is
        appended as the last path segment.
    center_x : float
        X coordinate of the zone center, in native feed units.
    center_y : float
        Y coordinate of the zone center, in native feed units.
    radius : float
        Zone radius in converted distance units (feed units / 1000).
    poll_interval : float
        Seconds between poll cycle starts.
    stale_after : float
        Seconds after the last observed violation before a drone is
        dropped from the tracked state.
    feed_timeout : float
        Total timeout in seconds for one drone report fetch.
    lookup_timeout : float
        Total timeout in seconds for one pilot lookup.
    max_concurrent_lookups : int
        Upper bound on pilot lookups in flight during one cycle.
    pilot_cache_ttl : float
        Seconds a successful pilot lookup is reused.  ``0`` disables the
        cache so every violating drone is looked up on every cycle.
    mqtt_enabled : bool
        Publish every snapshot to an MQTT broker as well.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_topic : str
        Topic the snapshot JSON is published to (retained).
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    api_trace_enabled : bool
        Log (redacted) request/response bodies at DEBUG level.
    """

    drones_url: str = DRONES_URL
    pilots_url: str = PILOTS_URL
    center_x: float = NDZ_CENTER_X
    center_y: float = NDZ_CENTER_Y
    radius: float = NDZ_RADIUS
    poll_interval: float = POLL_INTERVAL_SECONDS
    stale_after: float = STALE_AFTER_SECONDS
    feed_timeout: float = 5.0
    lookup_timeout: float = 5.0
    max_concurrent_lookups: int = 10
    pilot_cache_ttl: float = STALE_AFTER_SECONDS
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic: str = "ndz/violations"
    mqtt_keepalive: int = 60
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if not self.drones_url.strip():
            raise NdzConfigError("drones_url must be non-empty")
        if not self.pilots_url.strip():
            raise NdzConfigError("pilots_url must be non-empty")
        for name in ("radius", "poll_interval", "stale_after", "feed_timeout", "lookup_timeout"):
            if getattr(self, name) <= 0:
                raise NdzConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.max_concurrent_lookups < 1:
            raise NdzConfigError("max_concurrent_lookups must be at least 1")
        if self.pilot_cache_ttl < 0:
            raise NdzConfigError("pilot_cache_ttl must not be negative")

    @property
    def stale_window(self) -> timedelta:
        """Staleness window as a :class:`~datetime.timedelta`."""
        return timedelta(seconds=self.stale_after)

    @classmethod
    def from_env(cls, **overrides: Any) -> NdzConfig:
        """Create configuration from environment variables.

        Reads optional ``NDZ_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        NdzConfig
            Populated configuration.

        Raises
        ------
        NdzConfigError
            If a numeric variable cannot be parsed or a value is invalid.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "NDZ_DRONES_URL": "drones_url",
            "NDZ_PILOTS_URL": "pilots_url",
            "NDZ_MQTT_HOST": "mqtt_host",
            "NDZ_MQTT_TOPIC": "mqtt_topic",
        }
        _ENV_FLOAT_MAP = {
            "NDZ_CENTER_X": "center_x",
            "NDZ_CENTER_Y": "center_y",
            "NDZ_RADIUS": "radius",
            "NDZ_POLL_INTERVAL": "poll_interval",
            "NDZ_STALE_AFTER": "stale_after",
            "NDZ_FEED_TIMEOUT": "feed_timeout",
            "NDZ_LOOKUP_TIMEOUT": "lookup_timeout",
            "NDZ_PILOT_CACHE_TTL": "pilot_cache_ttl",
        }
        _ENV_INT_MAP = {
            "NDZ_MAX_CONCURRENT_LOOKUPS": "max_concurrent_lookups",
            "NDZ_MQTT_PORT": "mqtt_port",
            "NDZ_MQTT_KEEPALIVE": "mqtt_keepalive",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise NdzConfigError(f"{env_key} is not a number: {val!r}") from exc

        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = int(val)
            except ValueError as exc:
                raise NdzConfigError(f"{env_key} is not an integer: {val!r}") from exc

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("NDZ_MQTT_ENABLED"), False)

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("NDZ_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
