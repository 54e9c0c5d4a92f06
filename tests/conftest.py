"""Pytest configuration and shared fixtures.

Every test gets its own in-memory SQLite database, so repositories,
ledger and store run against real tables without a server.
"""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Configure before the app modules read settings
os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_FORMAT"] = "text"

from temp_targets.core.targeting.enums import GlucoseUnits  # noqa: E402
from temp_targets.database import (  # noqa: E402
    build_engine,
    build_session_maker,
    init_models,
)
from temp_targets.main import app  # noqa: E402
from temp_targets.routers.temp_targets import get_controller, get_store  # noqa: E402
from temp_targets.services.activation_ledger import ActivationLedger  # noqa: E402
from temp_targets.services.preset_repository import PresetRepository  # noqa: E402
from temp_targets.services.temp_target_controller import (  # noqa: E402
    TempTargetController,
)
from temp_targets.services.temp_target_store import (  # noqa: E402
    DatabaseTempTargetStore,
)

T0 = datetime(2025, 6, 15, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 1) -> datetime:
        self.now += timedelta(minutes=minutes)
        return self.now


def loop_settings(
    units: GlucoseUnits = GlucoseUnits.mg_dl,
    max_ratio: float = 2.5,
) -> SimpleNamespace:
    return SimpleNamespace(glucose_units=units, max_sensitivity_ratio=max_ratio)


@pytest_asyncio.fixture
async def session_maker() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session maker bound to a fresh in-memory database."""
    engine = build_engine("sqlite+aiosqlite://")
    await init_models(engine)
    yield build_session_maker(engine)
    await engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(session_maker, clock) -> ActivationLedger:
    return ActivationLedger(session_maker, clock=clock)


@pytest.fixture
def preset_repository(session_maker) -> PresetRepository:
    return PresetRepository(session_maker)


@pytest.fixture
def store(session_maker) -> DatabaseTempTargetStore:
    return DatabaseTempTargetStore(session_maker)


@pytest.fixture
def editor() -> MagicMock:
    return MagicMock()


def make_controller(
    preset_repository: PresetRepository,
    ledger: ActivationLedger,
    store,
    editor,
    clock,
    units: GlucoseUnits = GlucoseUnits.mg_dl,
    max_ratio: float = 2.5,
) -> TempTargetController:
    return TempTargetController(
        presets=preset_repository,
        ledger=ledger,
        store=store,
        settings=loop_settings(units, max_ratio),
        editor=editor,
        clock=clock,
    )


@pytest_asyncio.fixture
async def controller(
    preset_repository, ledger, store, editor, clock
) -> TempTargetController:
    """Started controller using mg/dL and a max sensitivity ratio of 2.5."""
    controller = make_controller(preset_repository, ledger, store, editor, clock)
    await controller.start()
    return controller


@pytest_asyncio.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose controller runs on the test database.

    The clock tracks wall time so the live store sees fresh entries.
    """
    clock = FakeClock(datetime.now(UTC))
    store = DatabaseTempTargetStore(session_maker)
    controller = make_controller(
        PresetRepository(session_maker),
        ActivationLedger(session_maker, clock=clock),
        store,
        MagicMock(),
        clock,
    )
    await controller.start()

    app.dependency_overrides[get_controller] = lambda: controller
    app.dependency_overrides[get_store] = lambda: store
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
