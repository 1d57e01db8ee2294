"""HTTP transport for the drone feed and pilot API."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol
from urllib.parse import urlsplit

import aiohttp

from ndzwatch._constants import USER_AGENT
from ndzwatch._redact import redact_for_log
from ndzwatch.config import NdzConfig
from ndzwatch.exceptions import NdzTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the ingestion modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def get_text(self, url: str, *, timeout: float | None = None) -> str:
        ...


def _endpoint(url: str) -> str:
    return urlsplit(url).path or url


class HttpTransport:
    """aiohttp-backed GET transport with per-request timeouts."""

    def __init__(self, config: NdzConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    async def get_text(self, url: str, *, timeout: float | None = None) -> str:
        """GET *url* and return the body as text.

        Raises
        ------
        NdzTransportError
            On connection errors, timeouts and any status other than 200.
        """
        endpoint = _endpoint(url)
        headers = {"accept-encoding": "gzip", "user-agent": USER_AGENT}
        client_timeout = aiohttp.ClientTimeout(total=timeout) if timeout is not None else None

        _logger.debug("GET %s", url)
        try:
            async with self._http.get(url, headers=headers, timeout=client_timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise NdzTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except NdzTransportError:
            raise
        except TimeoutError as exc:
            raise NdzTransportError(f"Request to {endpoint} timed out after {timeout}s", endpoint=endpoint) from exc
        except aiohttp.ClientError as exc:
            raise NdzTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc

        if self._config.api_trace_enabled:
            _logger.debug("Response from %s: %s", endpoint, redact_for_log(text))
        return text


async def get_json(transport: Transport, url: str, *, timeout: float | None = None) -> Any:
    """GET *url* through *transport* and decode the JSON body."""
    text = await transport.get_text(url, timeout=timeout)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise NdzTransportError(
            f"Invalid JSON from {_endpoint(url)}: {text[:200]}",
            endpoint=_endpoint(url),
        ) from exc
