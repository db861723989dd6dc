"""One-shot command submission to a relay."""

from typing import Optional, Sequence

import requests

from config import HTTP_TIMEOUT
from relay.client import RelayClient
from relay.server.protocol import Command, Endpoint
from security.authenticator import Authenticator
from utils.logger import get_logger

logger = get_logger(__name__)


class CommandSender:
    """Signs a command and posts it to the relay's /cmd endpoint."""

    def __init__(
        self,
        authenticator: Authenticator,
        target: str,
        timeout: float = HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.authenticator = authenticator
        self.client = RelayClient(target, timeout=timeout, session=session)

    def build(self, name: str, args: Sequence[str] = ()) -> Command:
        """Create a command signed at the current time."""
        if not name:
            raise ValueError("program name is required")
        return Command.signed(self.authenticator, name, args)

    def send(self, name: str, args: Sequence[str] = ()) -> requests.Response:
        """Sign and submit a command.

        Raises:
            TransportError: the relay could not be reached.
        """
        command = self.build(name, args)
        logger.debug(f"Sending {command.name} {list(command.args)} to {self.client.target}")
        response = self.client.post(Endpoint.COMMAND, command)
        logger.info(f"Relay answered {response.status_code}: {response.text.strip()}")
        return response
