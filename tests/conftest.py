"""Test configuration for pytest."""

import logging
import os
import subprocess

import pytest

from tests.helpers.process_factory import FakeProcesses


@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests to be minimal."""
    # Loggers created from here on pick this up
    os.environ['TRANSCRYPT_BRIDGE_LOG_LEVEL'] = 'WARNING'

    # Also configure root logger to be quiet
    logging.getLogger().setLevel(logging.WARNING)


@pytest.fixture
def fake_processes(monkeypatch):
    """Replace subprocess.run so no real Python or Transcrypt is ever started."""
    fake = FakeProcesses()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


@pytest.fixture
def project(tmp_path):
    """A project root with one Python entry point at src/app.py."""
    root = tmp_path / "proj"
    (root / "src").mkdir(parents=True)
    (root / "src" / "app.py").write_text("print('hello')\n", encoding="utf-8")
    return root
