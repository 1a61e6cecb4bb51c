import logging
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
if SRC.exists():
    sys.path.insert(0, str(SRC))

# Register shared Hypothesis profiles for deterministic CI runs and fast local loops.
from tests.util import hypothesis_profiles  # noqa: E402,F401  pylint: disable=unused-import


@pytest.fixture(autouse=True)
def _clean_chainhash_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer CHAINHASH_* overrides from leaking into tests."""

    for name in (
        "CHAINHASH_CONFIG",
        "CHAINHASH_INITIAL_CAPACITY",
        "CHAINHASH_LARGE_WARN_THRESHOLD",
        "CHAINHASH_DEMO_STUDENTS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_chainhash_logging() -> Iterator[None]:
    """Undo handler swaps made by CLI tests so later tests log to a live stream."""

    package_logger = logging.getLogger("chainhash")
    handlers = list(package_logger.handlers)
    level = package_logger.level
    yield
    for handler in list(package_logger.handlers):
        if handler not in handlers:
            handler.close()
        package_logger.removeHandler(handler)
    for handler in handlers:
        package_logger.addHandler(handler)
    package_logger.setLevel(level)
