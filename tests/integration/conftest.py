"""Pytest fixtures for integration tests.

This module provides fixtures for:
- Spawning a real Roster Sync server process on a free port
- Creating sync clients (devices) with isolated config directories
"""

from __future__ import annotations

import os
import socket
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Generator, List, Optional

import pytest
import requests

from rostersync.core.config import Config
from rostersync.core.sync_client import StatusIndicator, SyncClient

PROJECT_ROOT = Path(__file__).parent.parent.parent


@dataclass
class ServerNode:
    """A running roster server process."""

    config_dir: Path
    port: int
    require_api_key: bool = False
    process: Optional[subprocess.Popen] = None

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def is_server_running(self) -> bool:
        """Check if the server is responding."""
        try:
            resp = requests.get(f"{self.url}/api/health", timeout=1)
            return resp.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def wait_for_server(self, timeout: float = 10.0) -> bool:
        """Wait for server to become available."""
        start = time.time()
        while time.time() - start < timeout:
            if self.is_server_running():
                return True
            time.sleep(0.1)
        return False

    def stop_server(self) -> None:
        """Stop the server process."""
        if self.process:
            self.process.terminate()
            try:
                self.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.process.kill()
                self.process.wait()
            self.process = None


def find_free_port() -> int:
    """Find a free TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        return s.getsockname()[1]


def start_server(node: ServerNode) -> subprocess.Popen:
    """Start a server process for the given node."""
    env = os.environ.copy()
    env["PYTHONPATH"] = str(PROJECT_ROOT)

    cmd = [
        sys.executable,
        "-m", "rostersync.main",
        "-d", str(node.config_dir),
        "serve",
        "--host", "127.0.0.1",
        "--port", str(node.port),
    ]
    if node.require_api_key:
        cmd.append("--require-api-key")

    # Server logs every request; discard output so the pipe never fills
    process = subprocess.Popen(
        cmd,
        env=env,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        cwd=str(PROJECT_ROOT),
    )
    node.process = process
    return process


def _running_node(base_dir: Path, require_api_key: bool) -> ServerNode:
    config_dir = base_dir / "server"
    config_dir.mkdir(parents=True, exist_ok=True)
    node = ServerNode(config_dir=config_dir, port=find_free_port(), require_api_key=require_api_key)
    start_server(node)
    if not node.wait_for_server():
        node.stop_server()
        pytest.fail("Failed to start roster server")
    return node


@pytest.fixture
def running_server(tmp_path: Path) -> Generator[ServerNode, None, None]:
    """Server with a single shared roster."""
    node = _running_node(tmp_path, require_api_key=False)
    yield node
    node.stop_server()


@pytest.fixture
def keyed_server(tmp_path: Path) -> Generator[ServerNode, None, None]:
    """Server keeping one roster per API key."""
    node = _running_node(tmp_path, require_api_key=True)
    yield node
    node.stop_server()


@pytest.fixture
def make_device(tmp_path: Path) -> Callable[[str, ServerNode], SyncClient]:
    """Factory for sync clients, each with its own config dir and cache."""
    created: List[str] = []

    def factory(name: str, server: ServerNode) -> SyncClient:
        assert name not in created, f"device {name} already exists"
        created.append(name)
        config = Config(config_dir=tmp_path / "devices" / name)
        config.set_api_url(server.url)
        config.set("sync", {**config.get_sync_config(), "timeout_seconds": 5})
        return SyncClient(config, indicator=StatusIndicator(clear_after=0.1))

    return factory
