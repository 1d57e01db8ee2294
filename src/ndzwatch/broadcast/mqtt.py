"""MQTT snapshot broadcaster."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, cast

import paho.mqtt.client as mqtt

from ndzwatch.broadcast.base import snapshot_to_payload
from ndzwatch.config import NdzConfig
from ndzwatch.exceptions import NdzPublishError
from ndzwatch.state.store import StateSnapshot


class MqttBroadcaster:
    """Publish snapshots as retained JSON messages on one topic.

    paho-mqtt runs its network loop on a background thread; ``publish``
    only enqueues the message, so a slow broker never delays the poll
    timer. The message is retained so a client subscribing later gets the
    current state straight away.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 1883,
        topic: str = "ndz/violations",
        client_id: str = "",
        keepalive: int = 60,
        username: str | None = None,
        password: str | None = None,
        qos: int = 0,
        client: mqtt.Client | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._topic = topic
        self._keepalive = keepalive
        self._qos = qos
        self._logger = logger or logging.getLogger(__name__)
        self._connected = threading.Event()
        self._running = False
        self.message_count = 0
        self.skipped_count = 0

        if client is None:
            client = mqtt.Client(
                callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
                client_id=client_id,
            )
            client.enable_logger(self._logger)
        if username:
            client.username_pw_set(username, password)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        self._client = client

    @classmethod
    def from_config(cls, config: NdzConfig, **kwargs: Any) -> MqttBroadcaster:
        return cls(
            host=config.mqtt_host,
            port=config.mqtt_port,
            topic=config.mqtt_topic,
            keepalive=config.mqtt_keepalive,
            **kwargs,
        )

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    @property
    def is_running(self) -> bool:
        return self._running

    def _on_connect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if getattr(reason_code, "value", reason_code) != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            return
        self._connected.set()
        self._logger.debug("MQTT connected host=%s port=%s topic=%s", self._host, self._port, self._topic)

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        self._connected.clear()
        if self._running:
            self._logger.debug("MQTT disconnected: %s", reason_code)

    def start(self) -> None:
        """Connect in the background and start the network loop.

        paho reconnects on its own after a broker outage; snapshots
        published while disconnected are skipped, not queued.
        """
        if self._running:
            return
        self._client.connect_async(self._host, self._port, keepalive=self._keepalive)
        self._client.loop_start()
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Disconnect and stop the network loop."""
        was_running = self._running
        self._running = False
        if not was_running:
            return
        try:
            self._client.disconnect()
        finally:
            self._client.loop_stop()
            self._connected.clear()
            self._logger.debug("MQTT network loop stopped")

    async def publish(self, snapshot: StateSnapshot) -> None:
        """Publish *snapshot* as the retained state message.

        While the broker is unreachable the snapshot is skipped: the next
        publish after reconnecting carries the full state anyway.
        """
        if not self._connected.is_set():
            self.skipped_count += 1
            self._logger.debug("MQTT not connected, skipping snapshot (skipped=%d)", self.skipped_count)
            return

        body = json.dumps(snapshot_to_payload(snapshot), separators=(",", ":"))
        info = self._client.publish(self._topic, payload=body, qos=self._qos, retain=True)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise NdzPublishError(f"MQTT publish to {self._topic} failed (rc={info.rc})")
        self.message_count += 1
