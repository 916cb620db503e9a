"""Tests for TransitionEngine: stage moves, journey moves, archive, card drops."""

import asyncio
import uuid

import pytest

from journeyboard.core.exceptions import NotFoundError, RemoteError, ValidationError
from journeyboard.core.locking import KeyedLock
from journeyboard.domain.board import BoardState
from journeyboard.domain.drag import DragGesture
from journeyboard.domain.records import HistoryAction
from journeyboard.services.history_service import HistoryService
from journeyboard.services.transitions import TransitionEngine

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# set_stage
# ---------------------------------------------------------------------------


async def test_set_stage_moves_and_records(engine, ctx, board, seeded, store, recorder):
    outcome = await engine.set_stage(ctx, board, seeded.ana.id, seeded.contato.id)

    assert outcome.changed is True
    assert outcome.warnings == []
    assert board.get_person(seeded.ana.id).stage_id == seeded.contato.id
    assert store.people[seeded.ana.id].stage_id == seeded.contato.id

    [event] = recorder.events
    assert event.action_type == HistoryAction.STAGE_CHANGE
    assert event.metadata == {"old_stage": "VISITANTES", "new_stage": "Contato"}
    assert event.created_by == ctx.actor_id
    assert event.organization_id == ctx.organization_id


async def test_set_stage_to_effective_stage_is_noop(engine, ctx, board, seeded, store, recorder):
    # ana has stage_id None, so she is already in the entry stage
    outcome = await engine.set_stage(ctx, board, seeded.ana.id, seeded.entry.id)

    assert outcome.changed is False
    assert store.calls == []
    assert recorder.events == []


async def test_set_stage_failure_puts_person_back(engine, ctx, board, seeded, store, recorder):
    store.fail("update_person_stage")

    with pytest.raises(RemoteError):
        await engine.set_stage(ctx, board, seeded.bruno.id, seeded.batismo.id)

    assert board.get_person(seeded.bruno.id).stage_id == seeded.contato.id
    assert recorder.events == []


async def test_set_stage_unknown_stage(engine, ctx, board, seeded, store):
    with pytest.raises(NotFoundError):
        await engine.set_stage(ctx, board, seeded.ana.id, seeded.celula.id)

    assert store.calls == []


async def test_set_stage_unknown_person(engine, ctx, board, seeded):
    with pytest.raises(NotFoundError):
        await engine.set_stage(ctx, board, uuid.uuid4(), seeded.contato.id)


async def test_set_stage_timeout_rolls_back(ctx, board, seeded, store, recorder):
    engine = TransitionEngine(store, HistoryService(recorder, timeout=0.05), timeout=0.05, locks=KeyedLock())
    store.delay("update_person_stage", 0.5)

    with pytest.raises(RemoteError, match="timed out"):
        await engine.set_stage(ctx, board, seeded.ana.id, seeded.contato.id)

    assert board.get_person(seeded.ana.id).stage_id is None


async def test_history_failure_keeps_move(engine, ctx, board, seeded, store, recorder):
    recorder.fail("append")

    outcome = await engine.set_stage(ctx, board, seeded.ana.id, seeded.batismo.id)

    assert outcome.changed is True
    assert store.people[seeded.ana.id].stage_id == seeded.batismo.id
    assert len(outcome.warnings) == 1
    assert outcome.warnings[0].startswith("History not recorded")


async def test_concurrent_moves_of_one_person_are_serialized(ctx, board, seeded, store, recorder):
    engine = TransitionEngine(store, HistoryService(recorder, timeout=1.0), timeout=1.0, locks=KeyedLock())
    store.delay("update_person_stage", 0.05)

    await asyncio.gather(
        engine.set_stage(ctx, board, seeded.ana.id, seeded.contato.id),
        engine.set_stage(ctx, board, seeded.ana.id, seeded.batismo.id),
    )

    writes = [c["stage_id"] for c in store.calls_to("update_person_stage")]
    assert writes == [seeded.contato.id, seeded.batismo.id]
    assert board.get_person(seeded.ana.id).stage_id == seeded.batismo.id
    assert store.people[seeded.ana.id].stage_id == seeded.batismo.id
    assert [e.metadata["old_stage"] for e in recorder.events] == ["VISITANTES", "Contato"]


# ---------------------------------------------------------------------------
# set_journey
# ---------------------------------------------------------------------------


async def test_journey_change_lands_on_entry_stage(engine, ctx, board, seeded, store, recorder):
    outcome = await engine.set_journey(ctx, board, seeded.bruno.id, seeded.discipulado.id)

    assert outcome.changed is True
    assert outcome.person.journey_id == seeded.discipulado.id
    assert outcome.person.stage_id == seeded.entrada.id
    assert store.people[seeded.bruno.id].stage_id == seeded.entrada.id
    assert not board.has_person(seeded.bruno.id)

    [write] = store.calls_to("update_person_journey")
    assert write["journey_id"] == seeded.discipulado.id
    assert write["stage_id"] == seeded.entrada.id
    assert store.calls_to("update_person_stage") == []


async def test_journey_change_records_titles(engine, ctx, board, seeded, recorder):
    # P in J1 entry stage moves to J2; history carries both journey titles
    await engine.set_journey(ctx, board, seeded.ana.id, seeded.discipulado.id)

    [event] = recorder.events
    assert event.action_type == HistoryAction.JOURNEY_CHANGE
    assert event.metadata == {"old_journey": "Visitantes", "new_journey": "Discipulado"}


async def test_journey_change_to_same_journey_is_noop(engine, ctx, board, seeded, store):
    outcome = await engine.set_journey(ctx, board, seeded.bruno.id, seeded.visitantes.id)

    assert outcome.changed is False
    assert store.calls == []
    assert board.get_person(seeded.bruno.id).stage_id == seeded.contato.id


async def test_journey_change_unknown_journey(engine, ctx, board, seeded):
    with pytest.raises(NotFoundError):
        await engine.set_journey(ctx, board, seeded.ana.id, uuid.uuid4())

    assert board.has_person(seeded.ana.id)


async def test_journey_change_to_journey_without_stages(engine, ctx, board, seeded, store):
    empty, _ = store.seed_journey(ctx.organization_id, "Vazia", [])

    with pytest.raises(ValidationError):
        await engine.set_journey(ctx, board, seeded.ana.id, empty.id)

    assert store.calls_to("update_person_journey") == []


async def test_journey_change_failure_puts_person_back(engine, ctx, board, seeded, store):
    store.fail("update_person_journey")

    with pytest.raises(RemoteError):
        await engine.set_journey(ctx, board, seeded.bruno.id, seeded.discipulado.id)

    restored = board.get_person(seeded.bruno.id)
    assert restored.journey_id == seeded.visitantes.id
    assert restored.stage_id == seeded.contato.id


async def test_first_journey_from_detached_board(engine, ctx, store, seeded, recorder):
    eva = store.seed_person(ctx.organization_id, "Eva")
    detached = BoardState(None, people=[eva])

    outcome = await engine.set_journey(ctx, detached, eva.id, seeded.visitantes.id)

    assert outcome.person.stage_id == seeded.entry.id
    assert recorder.events[0].metadata == {"old_journey": None, "new_journey": "Visitantes"}


# ---------------------------------------------------------------------------
# set_archived
# ---------------------------------------------------------------------------


async def test_archive_hides_from_counts(engine, ctx, board, seeded, recorder):
    outcome = await engine.set_archived(ctx, board, seeded.bruno.id, True)

    assert outcome.changed is True
    assert board.counts()[seeded.contato.id] == 0
    assert board.get_person(seeded.bruno.id).stage_id == seeded.contato.id
    assert recorder.events[0].action_type == HistoryAction.ARCHIVED


async def test_unarchive(engine, ctx, board, seeded, recorder):
    await engine.set_archived(ctx, board, seeded.carla.id, False)

    assert board.counts()[seeded.batismo.id] == 1
    assert recorder.events[0].action_type == HistoryAction.UNARCHIVED


async def test_archive_already_archived_is_noop(engine, ctx, board, seeded, store):
    outcome = await engine.set_archived(ctx, board, seeded.carla.id, True)

    assert outcome.changed is False
    assert store.calls == []


async def test_archive_failure_puts_person_back(engine, ctx, board, seeded, store):
    store.fail("update_person_archived")

    with pytest.raises(RemoteError):
        await engine.set_archived(ctx, board, seeded.bruno.id, True)

    assert board.get_person(seeded.bruno.id).is_archived is False


# ---------------------------------------------------------------------------
# commit_card_drop
# ---------------------------------------------------------------------------


async def test_drag_with_repeated_over_writes_once(engine, ctx, board, seeded, store, recorder):
    gesture = DragGesture()
    gesture.start(board, seeded.ana.id)
    gesture.over(board, seeded.contato.id)
    gesture.over(board, seeded.contato.id)
    outcome = gesture.end(board, seeded.contato.id)

    result = await engine.commit_card_drop(ctx, board, outcome)

    assert result.changed is True
    assert store.calls_to("update_person_stage") == [
        {"organization_id": ctx.organization_id, "person_id": seeded.ana.id, "stage_id": seeded.contato.id}
    ]
    assert len(recorder.events) == 1


async def test_drop_outside_puts_card_back(engine, ctx, board, seeded, store):
    gesture = DragGesture()
    gesture.start(board, seeded.ana.id)
    gesture.over(board, seeded.batismo.id)
    outcome = gesture.end(board, None)

    result = await engine.commit_card_drop(ctx, board, outcome)

    assert result.changed is False
    assert board.find_container(seeded.ana.id) == seeded.entry.id
    assert store.calls == []


async def test_drop_back_on_origin_writes_nothing(engine, ctx, board, seeded, store):
    gesture = DragGesture()
    gesture.start(board, seeded.bruno.id)
    gesture.over(board, seeded.batismo.id)
    gesture.over(board, seeded.contato.id)
    outcome = gesture.end(board, seeded.contato.id)

    result = await engine.commit_card_drop(ctx, board, outcome)

    assert result.changed is False
    assert store.calls == []
    assert board.get_person(seeded.bruno.id).stage_id == seeded.contato.id


async def test_drop_without_over_events(engine, ctx, board, seeded, store):
    gesture = DragGesture()
    gesture.start(board, seeded.ana.id)
    outcome = gesture.end(board, seeded.batismo.id)

    result = await engine.commit_card_drop(ctx, board, outcome)

    assert result.changed is True
    assert board.get_person(seeded.ana.id).stage_id == seeded.batismo.id
    assert len(store.calls_to("update_person_stage")) == 1


async def test_drop_failure_puts_card_back(engine, ctx, board, seeded, store, recorder):
    store.fail("update_person_stage")
    gesture = DragGesture()
    gesture.start(board, seeded.ana.id)
    gesture.over(board, seeded.contato.id)
    outcome = gesture.end(board, seeded.contato.id)

    with pytest.raises(RemoteError):
        await engine.commit_card_drop(ctx, board, outcome)

    assert board.get_person(seeded.ana.id).stage_id is None
    assert recorder.events == []


async def test_commit_rejects_column_drag(engine, ctx, board, seeded):
    gesture = DragGesture()
    gesture.start(board, seeded.contato.id)
    outcome = gesture.end(board, seeded.batismo.id)

    with pytest.raises(ValueError):
        await engine.commit_card_drop(ctx, board, outcome)


async def test_drop_failure_keeps_moves_committed_during_gesture(engine, ctx, board, seeded, store):
    gesture = DragGesture()
    gesture.start(board, seeded.ana.id)
    gesture.over(board, seeded.contato.id)
    await engine.set_stage(ctx, board, seeded.bruno.id, seeded.batismo.id)
    store.fail("update_person_stage")
    outcome = gesture.end(board, seeded.contato.id)

    with pytest.raises(RemoteError):
        await engine.commit_card_drop(ctx, board, outcome)

    assert board.get_person(seeded.ana.id).stage_id is None
    assert board.get_person(seeded.bruno.id).stage_id == seeded.batismo.id
    assert store.people[seeded.bruno.id].stage_id == seeded.batismo.id


async def test_drop_failure_without_preview_puts_card_back(engine, ctx, board, seeded, store):
    store.fail("update_person_stage")
    gesture = DragGesture()
    gesture.start(board, seeded.bruno.id)
    outcome = gesture.end(board, seeded.batismo.id)

    with pytest.raises(RemoteError):
        await engine.commit_card_drop(ctx, board, outcome)

    assert board.get_person(seeded.bruno.id).stage_id == seeded.contato.id


async def test_is_busy_while_write_in_flight(engine, ctx, board, seeded, store):
    store.delay("update_person_stage", 0.05)

    task = asyncio.create_task(engine.set_stage(ctx, board, seeded.ana.id, seeded.contato.id))
    await asyncio.sleep(0.01)

    assert engine.is_busy(seeded.ana.id) is True
    assert engine.is_busy(seeded.bruno.id) is False
    await task
    assert engine.is_busy(seeded.ana.id) is False
