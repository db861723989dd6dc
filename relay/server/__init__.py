"""Relay server components."""

from .relay_server import RelayServer, CommandSlot, create_app
from .protocol import Command, LogEntry, Endpoint

__all__ = ["RelayServer", "CommandSlot", "create_app", "Command", "LogEntry", "Endpoint"]
