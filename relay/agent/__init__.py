"""Relay agent components."""

from .agent import RelayAgent, AgentConfig, AgentState, PollOutcome, PollStatus
from .executor import CommandExecutor

__all__ = [
    "RelayAgent",
    "AgentConfig",
    "AgentState",
    "PollOutcome",
    "PollStatus",
    "CommandExecutor",
]
