"""
Fixtures compartidas para Pytest.
Proveen odontogramas de prueba y un cliente HTTP contra la app.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.database import chart_store
from app.main import app
from app.schemas.dental_chart import ChartLoadRequest, PatientInfo, Tooth
from app.services.chart_mutation_service import build_tooth, initial_roster
from app.services.chart_session_service import ChartSession, get_session_registry


@pytest.fixture(autouse=True)
def reset_state():
    """Vacía sesiones abiertas y snapshots guardados entre tests."""
    yield
    get_session_registry().clear()
    chart_store.clear()


@pytest.fixture
def roster() -> list[Tooth]:
    """Roster completo: 32 permanentes + 20 deciduos."""
    return initial_roster()


@pytest.fixture
def molar_16() -> list[Tooth]:
    """Odontograma mínimo: molar 16 presente y sin hallazgos."""
    return [build_tooth(16)]


@pytest.fixture
def session() -> ChartSession:
    return ChartSession(
        "pac-001",
        ChartLoadRequest(patient_info=PatientInfo(name="Ana Pérez", id="pac-001")),
    )


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP de test contra la app ASGI."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
