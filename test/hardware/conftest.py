import asyncio

import pytest

from boardscope.util.instrument_check import check_instruments


@pytest.fixture(scope="session")
def available_instruments():
    """Reachability of every configured instrument."""
    return asyncio.run(check_instruments())


@pytest.fixture
def require_instrument(available_instruments):
    """Skip the test unless the named instrument answers a probe."""

    def check(name: str):
        for configured, status in available_instruments.items():
            if configured.lower() == name.lower() and status["status"]:
                return configured
        pytest.skip(f"Instrument {name} not available")

    return check
