"""Drone report ingestion + parsing.

The feed is an XML document of the form::

    <report>
      <deviceInformation deviceId="GUARDB1RD">
        <listenRange>500000</listenRange>
        ...
      </deviceInformation>
      <capture snapshotTimestamp="2023-01-01T12:00:00.000Z">
        <drone>
          <serialNumber>SN-abc</serialNumber>
          <positionY>250000</positionY>
          <positionX>260000</positionX>
          ...
        </drone>
      </capture>
    </report>

Any problem with the document is reported as a single
:class:`~ndzwatch.exceptions.NdzFeedError`.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any

from pydantic import ValidationError

from ndzwatch._transport import Transport
from ndzwatch.config import NdzConfig
from ndzwatch.exceptions import NdzFeedError, NdzTransportError
from ndzwatch.models.drone import FeedReport

_logger = logging.getLogger(__name__)


def _children_as_dict(element: ET.Element) -> dict[str, Any]:
    """Flatten ``<a>1</a><b>2</b>`` children into ``{"a": "1", "b": "2"}``."""
    values: dict[str, Any] = dict(element.attrib)
    for child in element:
        values[child.tag] = (child.text or "").strip()
    return values


def parse_report(document: str | bytes) -> FeedReport:
    """Parse a drone report XML document.

    Zero or one ``<drone>`` elements are valid; the capture element and
    its ``snapshotTimestamp`` attribute are required.
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        raise NdzFeedError(f"Drone report is not valid XML: {exc}") from exc

    capture = root.find("capture")
    if capture is None:
        raise NdzFeedError("Drone report has no <capture> element")

    payload: dict[str, Any] = {
        "snapshotTimestamp": capture.get("snapshotTimestamp"),
        "drones": [_children_as_dict(drone) for drone in capture.findall("drone")],
    }
    device = root.find("deviceInformation")
    if device is not None:
        payload["device"] = _children_as_dict(device)

    try:
        return FeedReport.model_validate(payload)
    except ValidationError as exc:
        raise NdzFeedError(f"Drone report failed validation: {exc.error_count()} error(s)") from exc


async def fetch_report(transport: Transport, config: NdzConfig) -> FeedReport:
    """Fetch and parse the current drone report.

    Raises
    ------
    NdzFeedError
        If the request fails or the document cannot be parsed.
    """
    try:
        document = await transport.get_text(config.drones_url, timeout=config.feed_timeout)
    except NdzTransportError as exc:
        raise NdzFeedError(str(exc), status_code=exc.status_code, endpoint=exc.endpoint) from exc

    report = parse_report(document)
    _logger.debug(
        "Drone report snapshot=%s drones=%d",
        report.snapshot_timestamp.isoformat(),
        len(report.drones),
    )
    return report
