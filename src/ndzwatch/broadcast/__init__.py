"""Outbound snapshot delivery."""

from ndzwatch.broadcast.base import Broadcaster, FanOutBroadcaster, snapshot_to_payload
from ndzwatch.broadcast.hub import StateHub, Subscription
from ndzwatch.broadcast.mqtt import MqttBroadcaster

__all__ = [
    "Broadcaster",
    "FanOutBroadcaster",
    "MqttBroadcaster",
    "StateHub",
    "Subscription",
    "snapshot_to_payload",
]
