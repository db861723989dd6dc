#!/usr/bin/env python3
"""Polling agent that executes commands published on a relay.

Each cycle the agent sleeps for its poll interval, fetches the relay's
current command, skips it if already executed, verifies it, runs it, and
posts signed log entries carrying the output and any error back to the
relay.

Commands are accepted only if signed less than one poll interval ago.
This ties the replay window to the polling cadence: a slower agent
accepts older commands.
"""

import binascii
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import requests

from config import COMMAND_TIMEOUT, DEFAULT_POLL_INTERVAL, HTTP_TIMEOUT
from relay.agent.executor import CommandExecutor
from relay.client import RelayClient
from relay.errors import DecodeError, ExecutionError, TransportError
from relay.server.protocol import Command, Endpoint, LogEntry
from security.authenticator import AuthenticationError, Authenticator
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AgentConfig:
    """Agent configuration."""
    target: str
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float = HTTP_TIMEOUT
    command_timeout: Optional[float] = COMMAND_TIMEOUT


class AgentState(Enum):
    """Where the agent is within a polling cycle."""
    IDLE = "idle"
    SLEEPING = "sleeping"
    FETCHING = "fetching"
    VERIFYING = "verifying"
    EXECUTING = "executing"
    REPORTING = "reporting"


class PollStatus(Enum):
    """Result of a single polling cycle."""
    IDLE = "idle"  # relay holds no command yet
    FETCH_FAILED = "fetch_failed"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"
    EXECUTED = "executed"


@dataclass
class PollOutcome:
    """What one polling cycle did."""
    status: PollStatus
    command: Optional[Command] = None
    error: Optional[Exception] = None
    output: str = ""
    report_errors: List[TransportError] = field(default_factory=list)


class RelayAgent:
    """Fetches, verifies, executes and reports relay commands."""

    def __init__(
        self,
        authenticator: Authenticator,
        config: AgentConfig,
        executor: Optional[CommandExecutor] = None,
        session: Optional[requests.Session] = None,
    ):
        self.authenticator = authenticator
        self.config = config
        self.executor = executor or CommandExecutor(timeout=config.command_timeout)
        self.client = RelayClient(config.target, timeout=config.timeout, session=session)
        self.last_signature: Optional[bytes] = None
        self.state = AgentState.IDLE
        self._stop_event = threading.Event()

    def _fetch(self) -> Optional[Command]:
        """Fetch and decode the relay's command; None if the slot is empty."""
        self.state = AgentState.FETCHING
        payload = self.client.fetch()
        if not payload.strip():
            return None
        return Command.from_json(payload)

    def _report(self, message: str, outcome: PollOutcome) -> None:
        """Post a signed log entry; failures are logged and recorded."""
        entry = LogEntry.signed(self.authenticator, message)
        try:
            response = self.client.post(Endpoint.LOG, entry)
        except TransportError as e:
            logger.warning(f"Log report failed: {e}")
            outcome.report_errors.append(e)
            return

        if response.status_code != 200:
            error = TransportError(
                f"relay refused log entry ({response.status_code}): {response.text.strip()}",
                status_code=response.status_code,
            )
            logger.warning(f"Log report failed: {error}")
            outcome.report_errors.append(error)

    def poll_once(self) -> PollOutcome:
        """Run one fetch/verify/execute/report cycle."""
        try:
            try:
                command = self._fetch()
            except (TransportError, DecodeError) as e:
                logger.warning(f"Fetch failed: {e}")
                return PollOutcome(PollStatus.FETCH_FAILED, error=e)

            if command is None:
                logger.debug("Relay holds no command")
                return PollOutcome(PollStatus.IDLE)

            try:
                signature = binascii.unhexlify(command.signature)
            except (TypeError, ValueError):
                signature = None
            if signature is not None and signature == self.last_signature:
                logger.debug(f"Command {command.name} already executed")
                return PollOutcome(PollStatus.DUPLICATE, command=command)

            self.state = AgentState.VERIFYING
            try:
                self.authenticator.verify(command, self.config.poll_interval)
            except AuthenticationError as e:
                logger.warning(f"Rejected command {command.name}: {e}")
                return PollOutcome(PollStatus.REJECTED, command=command, error=e)

            self.last_signature = signature
            outcome = PollOutcome(PollStatus.EXECUTED, command=command)

            self.state = AgentState.EXECUTING
            logger.info(f"Will execute: {command.name} {list(command.args)}")
            try:
                outcome.output = self.executor.run(command.name, command.args)
            except ExecutionError as e:
                logger.error(f"Execution failed: {e}")
                outcome.output = e.output
                outcome.error = e

            self.state = AgentState.REPORTING
            if outcome.output:
                self._report(outcome.output, outcome)
            if outcome.error is not None:
                self._report(str(outcome.error), outcome)
            return outcome
        finally:
            self.state = AgentState.IDLE

    def run(self, max_iterations: Optional[int] = None) -> int:
        """Poll until stopped (blocking).

        The first fetch happens one poll interval after start. Returns the
        number of completed cycles.
        """
        iterations = 0
        logger.info(
            f"Polling {self.client.target} every {self.config.poll_interval}s"
        )

        try:
            while True:
                self.state = AgentState.SLEEPING
                if self._stop_event.wait(self.config.poll_interval):
                    break
                self.poll_once()
                iterations += 1
                if max_iterations is not None and iterations >= max_iterations:
                    break
        except KeyboardInterrupt:
            logger.info("Agent interrupted")
        finally:
            self.state = AgentState.IDLE
            self._stop_event.clear()

        return iterations

    def stop(self) -> None:
        """Ask the loop to exit after the current cycle.

        A stop requested before run() starts makes it return immediately.
        """
        self._stop_event.set()
