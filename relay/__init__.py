"""Signed remote-command distribution over an HTTP relay.

This module provides:
- RelayServer: HTTP relay holding the latest accepted command
- CommandSender: One-shot signed command submission
- RelayAgent: Poller that verifies, executes and reports commands

Security:
- Keyed BLAKE2b signatures from a shared secret
- Time-bounded replay window on every message
"""

from .server.relay_server import RelayServer, CommandSlot, create_app
from .server.protocol import Command, LogEntry, Endpoint
from .sender import CommandSender
from .agent.agent import RelayAgent, AgentConfig, PollStatus
from .errors import RelayError, DecodeError, TransportError, ExecutionError

__all__ = [
    "RelayServer",
    "CommandSlot",
    "create_app",
    "Command",
    "LogEntry",
    "Endpoint",
    "CommandSender",
    "RelayAgent",
    "AgentConfig",
    "PollStatus",
    "RelayError",
    "DecodeError",
    "TransportError",
    "ExecutionError",
]
