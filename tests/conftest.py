"""
Pytest configuration and fixtures for Aegis tests.
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest

# Keep test-session log files out of the working tree
os.environ.setdefault("AEGIS_LOG_DIR", str(Path(tempfile.gettempdir()) / "aegis-test-logs"))

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from aegis.database.database import Database  # noqa: E402


class FakeClock:
    """Manually advanced clock for expiry and burst tests."""

    def __init__(self, start_ms: int = 1_000_000) -> None:
        self.current_ms = start_ms

    def now_ms(self) -> int:
        return self.current_ms

    def advance(self, delta_ms: int) -> int:
        self.current_ms += delta_ms
        return self.current_ms


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def database(tmp_path: Path):
    """An initialized database in a temporary directory."""
    db = Database(tmp_path / "aegis_test.db")
    assert await db.initialize()
    yield db
    await db.shutdown()
