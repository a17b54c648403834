"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend and give every test a clean
composition root: fresh in-memory stores seeded with the demo data, the stub
confirmation adapter and an empty session store. Environment toggles that
change app behavior are cleared per test so suites do not leak into each
other.
"""
import sys
from pathlib import Path

import pytest

# Ensure `backend.*` is importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "backend" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

DEMO_PASSWORD = "demo-pass-123"
ADMIN_ID = "1"
AGENT_ID = "2"

_ENV_TOGGLES = (
    "FREIGHTWISE_ENV",
    "FREIGHTWISE_TRUST_PROXY",
    "STRICT_CSRF",
    "DATABASE_URL",
    "DEFAULT_LOCALE",
    "AI_BACKEND",
    "RFQ_CONFIRMATION_ADAPTER",
    "AI_RFQ_MODEL",
    "AI_TIMEOUT_RFQ",
    "OLLAMA_BASE_URL",
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_env_toggles(monkeypatch: pytest.MonkeyPatch):
    for var in _ENV_TOGGLES:
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_wiring(_clear_env_toggles):
    """Install fresh in-memory stores for each test and drop them afterwards."""
    from backend.ai import stub_confirmation
    from backend.freight.repo import InMemoryFreightRepo
    from backend.identity_access.stores import UserStore
    from backend.web import wiring

    # Low PBKDF2 cost keeps the seeded logins fast
    wiring.set_user_store(wiring.seed_demo_users(UserStore(), password=DEMO_PASSWORD, iterations=1_000))
    wiring.set_repo(InMemoryFreightRepo())
    wiring.set_confirmation_adapter(stub_confirmation.build())
    wiring.reset_session_store()
    yield
    wiring.set_user_store(None)
    wiring.set_repo(None)
    wiring.set_confirmation_adapter(None)
    wiring.reset_session_store()


@pytest.fixture
def admin_sid() -> str:
    """Session id for the seeded admin (user id "1")."""
    from backend.web import wiring

    return wiring.get_session_store().create(user_id=ADMIN_ID).session_id


@pytest.fixture
def agent_sid() -> str:
    """Session id for the seeded agent Alice (user id "2")."""
    from backend.web import wiring

    return wiring.get_session_store().create(user_id=AGENT_ID).session_id
