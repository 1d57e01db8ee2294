"""High-level async monitor for the no-drone zone."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import aiohttp

from ndzwatch._transport import HttpTransport, Transport
from ndzwatch.broadcast.base import Broadcaster, FanOutBroadcaster
from ndzwatch.broadcast.hub import StateHub, Subscription
from ndzwatch.broadcast.mqtt import MqttBroadcaster
from ndzwatch.config import NdzConfig
from ndzwatch.exceptions import NdzError
from ndzwatch.scheduler import PollScheduler, ResultCallback
from ndzwatch.state.events import CycleResult
from ndzwatch.state.store import StateSnapshot
from ndzwatch.tracker import ViolationTracker

_logger = logging.getLogger(__name__)


class NdzMonitor:
    """Poll the drone feed and keep subscribers up to date.

    Usage::

        async with NdzMonitor(NdzConfig.from_env()) as monitor:
            with monitor.subscribe() as subscription:
                monitor.start()
                async for snapshot in subscription:
                    ...

    Parameters
    ----------
    config : NdzConfig
        Monitor configuration.
    session : aiohttp.ClientSession or None
        HTTP session to reuse. When omitted the monitor creates and
        closes its own.
    transport : Transport or None
        Replaces the HTTP transport entirely (tests, alternative feeds).
    broadcasters : list or None
        Extra broadcasters that receive every snapshot next to the
        built-in subscription hub.
    on_result : callable or None
        Called with every :class:`CycleResult` the scheduler produces.
    clock : callable or None
        Returns the current UTC time used for staleness checks. Defaults
        to the wall clock.
    """

    def __init__(
        self,
        config: NdzConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        broadcasters: list[Broadcaster] | None = None,
        on_result: ResultCallback | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._custom_transport = transport
        self._extra_broadcasters = list(broadcasters or [])
        self._on_result = on_result
        self._clock = clock
        self._hub = StateHub()
        self._mqtt: MqttBroadcaster | None = None
        self._tracker: ViolationTracker | None = None
        self._scheduler: PollScheduler | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> NdzMonitor:
        transport = self._custom_transport
        if transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            transport = HttpTransport(self._config, self._http_session)

        targets: list[Broadcaster] = [self._hub, *self._extra_broadcasters]
        if self._config.mqtt_enabled:
            self._mqtt = MqttBroadcaster.from_config(self._config)
            try:
                self._mqtt.start()
            except OSError:
                # Startup failures must not stop polling; paho retries once running.
                _logger.warning("MQTT broadcaster failed to start", exc_info=True)
            targets.append(self._mqtt)

        tracker_kwargs: dict[str, Any] = {}
        if self._clock is not None:
            tracker_kwargs["clock"] = self._clock
        self._tracker = ViolationTracker(
            self._config,
            transport,
            broadcaster=FanOutBroadcaster(targets),
            **tracker_kwargs,
        )
        self._scheduler = PollScheduler(
            self._tracker.run_cycle,
            interval=self._config.poll_interval,
            on_result=self._on_result,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._scheduler is not None:
            await self._scheduler.stop()
        self._scheduler = None
        self._tracker = None
        self._hub.close()
        if self._mqtt is not None:
            self._mqtt.stop()
            self._mqtt = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_tracker(self) -> ViolationTracker:
        if self._tracker is None:
            raise NdzError("Monitor not initialized. Use 'async with NdzMonitor(...) as monitor:'")
        return self._tracker

    def _require_scheduler(self) -> PollScheduler:
        if self._scheduler is None:
            raise NdzError("Monitor not initialized. Use 'async with NdzMonitor(...) as monitor:'")
        return self._scheduler

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def hub(self) -> StateHub:
        return self._hub

    @property
    def state(self) -> StateSnapshot:
        """Current tracked violations."""
        return self._require_tracker().state

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.is_running

    def subscribe(self) -> Subscription:
        """Receive every snapshot published from now on."""
        return self._hub.subscribe()

    async def poll_once(self) -> CycleResult:
        """Run a single poll cycle outside the scheduler."""
        return await self._require_tracker().run_cycle()

    def start(self) -> None:
        """Start polling in the background."""
        self._require_scheduler().start()

    async def stop(self) -> None:
        """Stop background polling; the tracked state is kept."""
        await self._require_scheduler().stop()

    async def run_forever(self) -> None:
        """Poll in the foreground until cancelled."""
        await self._require_scheduler().run()
