"""HTTP client for talking to a relay."""

from typing import Optional, Union

import requests

from config import HTTP_TIMEOUT
from relay.errors import TransportError
from relay.server.protocol import Command, Endpoint, LogEntry


class RelayClient:
    """Thin requests wrapper bound to one relay base URL.

    Every call carries ``timeout`` and maps requests failures to
    TransportError. Non-2xx answers are returned, not raised, so callers
    can show the relay's reason.
    """

    def __init__(
        self,
        target: str,
        timeout: float = HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not target:
            raise ValueError("relay target URL is required")
        if "://" not in target:
            target = f"http://{target}"
        self.target = target.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url(self, endpoint: Endpoint) -> str:
        return self.target + endpoint.value

    def fetch(self) -> bytes:
        """GET the current command payload."""
        url = self.url(Endpoint.FETCH)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"GET {url} failed: {e}") from e
        if response.status_code != 200:
            raise TransportError(
                f"GET {url} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response.content

    def post(self, endpoint: Endpoint, message: Union[Command, LogEntry]) -> requests.Response:
        """POST a signed message as JSON."""
        url = self.url(endpoint)
        try:
            return self.session.post(
                url,
                data=message.to_json().encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"POST {url} failed: {e}") from e

    def close(self) -> None:
        self.session.close()
