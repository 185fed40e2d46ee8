"""Shared pytest configuration and fixtures."""

from collections.abc import Generator

import pytest

from dynamo_insights.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _no_dotenv() -> Generator[None]:
    """Block .env loading so a developer's local config never leaks into tests.

    Sets Settings.model_config['env_file'] = None before each test and clears
    the cached settings on both sides.
    """
    get_settings.cache_clear()
    original = Settings.model_config.get("env_file")
    Settings.model_config["env_file"] = None

    try:
        yield
    finally:
        Settings.model_config["env_file"] = original
        get_settings.cache_clear()
