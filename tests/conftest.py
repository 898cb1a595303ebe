"""Pytest fixtures for kafka-patterns tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the package is importable when running pytest from the repo root
# without an editable install.
_src = Path(__file__).resolve().parent.parent / "src"
if _src.is_dir() and str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from kafka_patterns.config import KafkaCoreOptions  # noqa: E402
from kafka_patterns.memory import InMemoryBroker  # noqa: E402


@pytest.fixture
def broker() -> InMemoryBroker:
    return InMemoryBroker()


@pytest.fixture
def core_options() -> KafkaCoreOptions:
    return KafkaCoreOptions(client_id="test-client")


