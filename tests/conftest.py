"""Pytest configuration and shared fixtures."""

import sys
from datetime import date
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from todo_scheduler.config import Config, ConfigModel  # noqa: E402
from todo_scheduler.storage import Storage, reset_storage  # noqa: E402
from todo_scheduler.services import TaskService  # noqa: E402


FIXED_TODAY = date(2024, 3, 1)  # a Friday


@pytest.fixture(autouse=True)
def reset_singletons():
    """Drop cached config/storage between tests."""
    Config._instance = None
    reset_storage()
    yield
    Config._instance = None
    reset_storage()


@pytest.fixture
def config(tmp_path):
    return ConfigModel(data_dir=str(tmp_path))


@pytest.fixture
def storage(config):
    return Storage(config)


@pytest.fixture
def service(storage, config):
    return TaskService(storage, config, today=lambda: FIXED_TODAY)
