"""Ingestion layer.

Adapters that fetch the drone report and pilot details over HTTP and
turn them into typed models. Nothing here touches the tracked state.
"""

__all__: list[str] = []
