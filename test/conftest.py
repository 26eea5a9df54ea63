import socket

import pytest


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "slow: marks test as slow running test")
    config.addinivalue_line(
        "markers", "hardware: marks test that require physical hardware"
    )


@pytest.fixture
def free_port():
    """A local TCP port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def user_home(tmp_path, monkeypatch):
    """Point Path.home() at an empty temporary directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path
