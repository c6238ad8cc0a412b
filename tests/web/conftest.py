"""Pytest fixtures for web API tests.

Provides Flask test clients for the shared-roster and per-API-key modes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Generator

import pytest
from flask import Flask
from flask.testing import FlaskClient

from rostersync.web import create_app
from tests.helpers import register_user


@pytest.fixture
def web_app(test_config_dir: Path) -> Generator[Flask, None, None]:
    """Create Flask app with a single shared roster.

    Args:
        test_config_dir: Temporary config directory

    Yields:
        Flask application instance
    """
    app = create_app(config_dir=test_config_dir, require_api_key=False)
    app.config["TESTING"] = True
    yield app


@pytest.fixture
def client(web_app: Flask) -> FlaskClient:
    """Create Flask test client.

    Args:
        web_app: Flask application

    Returns:
        Flask test client for making requests
    """
    return web_app.test_client()


@pytest.fixture
def keyed_app(test_config_dir: Path) -> Generator[Flask, None, None]:
    """Create Flask app that keeps one roster per API key."""
    app = create_app(config_dir=test_config_dir, require_api_key=True)
    app.config["TESTING"] = True
    yield app


@pytest.fixture
def keyed_client(keyed_app: Flask) -> FlaskClient:
    return keyed_app.test_client()


@pytest.fixture
def auth_headers(keyed_client: FlaskClient) -> Dict[str, str]:
    """Headers for a freshly registered user."""
    return register_user(keyed_client, "agent@example.com")
