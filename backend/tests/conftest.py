"""Shared test fixtures for all test groups."""

import os
import uuid
from types import SimpleNamespace

import pytest

# Settings are cached on first use; the signing secret must be in place first.
os.environ.setdefault("JWT_SECRET", "journeyboard-test-secret-0123456789abcdef")

from journeyboard.core.config import get_settings  # noqa: E402
from journeyboard.core.locking import KeyedLock  # noqa: E402
from journeyboard.domain.board import BoardState  # noqa: E402
from journeyboard.domain.context import OrgContext  # noqa: E402
from journeyboard.services.history_service import HistoryService  # noqa: E402
from journeyboard.services.transitions import TransitionEngine  # noqa: E402
from journeyboard.store.fake import HistoryRecorderFake, PipelineStoreFake  # noqa: E402

get_settings.cache_clear()


@pytest.fixture
def ctx():
    """OrgContext of the organization under test."""
    return OrgContext(organization_id=uuid.uuid4(), actor_id="user-001")


@pytest.fixture
def other_ctx():
    """OrgContext of an unrelated organization."""
    return OrgContext(organization_id=uuid.uuid4(), actor_id="user-002")


@pytest.fixture
def store():
    """Fresh in-memory PipelineStore."""
    return PipelineStoreFake()


@pytest.fixture
def recorder():
    """Fresh in-memory HistoryRecorder."""
    return HistoryRecorderFake()


@pytest.fixture
def seeded(ctx, store):
    """Two journeys with stages and people.

    Visitantes: VISITANTES(0), Contato(1), Batismo(2)
      ana   - stage_id None (shown in VISITANTES)
      bruno - Contato
      carla - Batismo, archived
    Discipulado: ENTRADA(0), Celula(1)
      davi  - ENTRADA
    """
    org = ctx.organization_id
    visitantes, (entry, contato, batismo) = store.seed_journey(org, "Visitantes", ["VISITANTES", "Contato", "Batismo"])
    discipulado, (entrada, celula) = store.seed_journey(org, "Discipulado", ["ENTRADA", "Celula"])

    ana = store.seed_person(org, "Ana", journey_id=visitantes.id)
    bruno = store.seed_person(org, "Bruno", journey_id=visitantes.id, stage_id=contato.id)
    carla = store.seed_person(org, "Carla", journey_id=visitantes.id, stage_id=batismo.id, is_archived=True)
    davi = store.seed_person(org, "Davi", journey_id=discipulado.id, stage_id=entrada.id)

    return SimpleNamespace(
        visitantes=visitantes,
        entry=entry,
        contato=contato,
        batismo=batismo,
        discipulado=discipulado,
        entrada=entrada,
        celula=celula,
        ana=ana,
        bruno=bruno,
        carla=carla,
        davi=davi,
    )


@pytest.fixture
def board(store, seeded):
    """BoardState of the Visitantes journey as loaded from the store."""
    journey = seeded.visitantes
    stages = [s for s in store.stages.values() if s.journey_id == journey.id]
    people = [p for p in store.people.values() if p.journey_id == journey.id]
    return BoardState(journey, stages, people)


@pytest.fixture
def engine(store, recorder):
    """TransitionEngine with its own lock registry and a short timeout."""
    return TransitionEngine(store, HistoryService(recorder, timeout=1.0), timeout=1.0, locks=KeyedLock())
