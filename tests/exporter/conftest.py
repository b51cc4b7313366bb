"""Shared fixtures for the exporter tests."""

import pytest
from prometheus_client import CollectorRegistry

from recording import RecordingObserver


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()
