"""
Pytest configuration — pin the environment so tests never depend on a local .env.

Strategy: set the forwarding numbers and disable the notification webhook
BEFORE any forwarder module is imported (config is read at import time).
"""
import os

# MUST be set before any forwarder module is imported
os.environ["PHONE_NUMBERS"] = "+15550000001,+15550000002,+15550000003"
os.environ["DIAL_TIMEOUT"] = "20"
os.environ["FALLBACK_MODE"] = "voicemail"
os.environ["NOTIFY_WEBHOOK_URL"] = ""
os.environ.setdefault("APP_BASE_URL", "http://localhost:8000")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from forwarder.config import CascadeConfig
from forwarder.cascade import CascadeController
from forwarder.notifier import ExhaustionNotifier

NUMBERS = ("+15551110001", "+15551110002", "+15551110003")


def make_controller(numbers=NUMBERS, fallback_mode="voicemail", timeout=20):
    """Controller with a mocked notifier; inspect `controller.notifier.dispatch`."""
    config = CascadeConfig(numbers=numbers, timeout_seconds=timeout, fallback_mode=fallback_mode)
    notifier = MagicMock(spec=ExhaustionNotifier)
    notifier.enabled = True
    notifier.dispatch.return_value = None
    return CascadeController(config, notifier)


@pytest.fixture
def controller():
    return make_controller()


@pytest.fixture
def client_for():
    """Build a TestClient whose routes use the given controller."""
    from forwarder.main import app
    from forwarder.twilio_routes import get_controller

    def _make(ctrl):
        app.dependency_overrides[get_controller] = lambda: ctrl
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()
