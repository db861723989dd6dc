"""Shared fixtures for relaycmd tests."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from urllib.parse import urlsplit

import pytest
import requests

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


SECRET = "s3cret"
T0 = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock returning aware UTC datetimes."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class FlaskSession:
    """requests.Session stand-in that routes calls into a Flask test client."""

    def __init__(self, app):
        self.client = app.test_client()
        self.calls = []

    @staticmethod
    def _response(flask_response) -> requests.Response:
        response = requests.Response()
        response.status_code = flask_response.status_code
        response._content = flask_response.get_data()
        response.encoding = "utf-8"
        return response

    def get(self, url, timeout=None):
        self.calls.append(("GET", url, timeout))
        return self._response(self.client.get(urlsplit(url).path or "/"))

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append(("POST", url, timeout))
        return self._response(
            self.client.post(urlsplit(url).path, data=data, headers=headers)
        )

    def close(self):
        pass


# ============================================================================
# Authentication Fixtures
# ============================================================================

@pytest.fixture
def clock():
    """A fake clock shared by every party in a test."""
    return FakeClock()


@pytest.fixture
def authenticator(clock):
    """Authenticator for the shared test secret."""
    from security.authenticator import Authenticator
    return Authenticator(SECRET, clock=clock)


@pytest.fixture
def other_authenticator(clock):
    """Authenticator holding a different secret."""
    from security.authenticator import Authenticator
    return Authenticator("not-the-secret", clock=clock)


# ============================================================================
# Relay Fixtures
# ============================================================================

@pytest.fixture
def log_sink():
    """Collects LogEntry objects accepted by the relay."""
    return []


@pytest.fixture
def relay_app(authenticator, log_sink):
    """Relay Flask app sharing the test clock."""
    from relay.server.relay_server import create_app
    app = create_app(authenticator, on_log=log_sink.append)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def relay_client(relay_app):
    """Flask test client for the relay."""
    return relay_app.test_client()


@pytest.fixture
def relay_session(relay_app):
    """requests-compatible session backed by the relay app."""
    return FlaskSession(relay_app)


# ============================================================================
# Agent Fixtures
# ============================================================================

@pytest.fixture
def agent_config():
    """Agent config pointing at the in-process relay."""
    from relay.agent.agent import AgentConfig
    return AgentConfig(target="http://relay.test:1992", poll_interval=10.0, timeout=2.0)
