"""End-to-end moderation scenarios through the console facade."""

import asyncio

import pytest

from conftest import confirm_all, novel
from src.engines.moderation.action_executor import OutcomeStatus
from src.engines.moderation.error_classifier import ErrorClass
from src.engines.moderation.errors import EntityNotFoundError
from src.kernel.models.entity import (
    CategoryStatus,
    EntityKind,
    ModerationAction,
    NovelStatus,
)
from src.kernel.models.listing import ListQuery
from src.kernel.transport.api_client import TransportError

FK_VIOLATION = (
    "could not execute statement; SQL [n/a]; constraint [fk_novel_category]; "
    "nested exception is a foreign key constraint violation"
)


class TestScenarios:

    @pytest.mark.asyncio
    async def test_hard_delete_blocked_by_dependents(self, console, category_view, backend):
        """Category with novels: hard delete fails as referential integrity and the row stays."""
        fantasy = category_view.find(1)
        assert fantasy.dependent_resource_count == 3
        backend.fail(fantasy.ref, TransportError(FK_VIOLATION, 500))

        outcome = await category_view.request_transition(fantasy, ModerationAction.HARD_DELETE, confirm_all)

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error.error_class == ErrorClass.REFERENTIAL_INTEGRITY
        assert outcome.error.raw_message == FK_VIOLATION
        assert "soft delete" in outcome.error.recovery_hint.lower()
        assert not console.is_busy(fantasy)
        row = category_view.find(1)
        assert row.status == CategoryStatus.ACTIVE
        assert category_view.row_state(row).error == outcome.error

    @pytest.mark.asyncio
    async def test_approve_refetch_shows_published(self, console, novel_view, backend):
        """Approve then refetch shows PUBLISHED."""
        entity = novel_view.find(1)

        outcome = await novel_view.request_transition(entity, ModerationAction.APPROVE, confirm_all)

        assert outcome.ok
        assert not console.is_busy(entity)
        assert novel_view.find(1).status == NovelStatus.PUBLISHED

    @pytest.mark.asyncio
    async def test_approve_under_review_filter_drops_row(self, console, novel_view, backend):
        """An approved novel leaves the UNDER_REVIEW filter."""
        await novel_view.load(ListQuery(filters={"status": "UNDER_REVIEW"}))
        entity = novel_view.find(1)

        outcome = await novel_view.request_transition(entity, ModerationAction.APPROVE, confirm_all)

        assert outcome.ok
        assert outcome.page.find(entity.ref) is None
        with pytest.raises(EntityNotFoundError):
            novel_view.find(1)

    @pytest.mark.asyncio
    async def test_archived_novel_rejects_locally(self, console, novel_view, backend):
        """Archived novels offer nothing and reject locally."""
        archived = novel(9, NovelStatus.ARCHIVED)
        backend.entities[archived.ref] = archived

        assert console.legal_actions(archived) == frozenset()
        outcome = await novel_view.request_transition(archived, ModerationAction.HIDE, confirm_all)

        assert outcome.status == OutcomeStatus.REJECTED
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_same_tick_requests_one_wins(self, console, novel_view, backend):
        """Two requests in the same tick: one runs, one is BUSY."""
        entity = novel_view.find(3)
        gate = backend.hold(entity.ref)

        hide = asyncio.create_task(novel_view.request_transition(entity, ModerationAction.HIDE, confirm_all))
        archive = asyncio.create_task(novel_view.request_transition(entity, ModerationAction.ARCHIVE, confirm_all))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert len(backend.calls) == 1

        gate.set()
        outcomes = await asyncio.gather(hide, archive)

        statuses = sorted(o.status.value for o in outcomes)
        assert statuses == [OutcomeStatus.BUSY.value, OutcomeStatus.SUCCEEDED.value]
        assert len(backend.calls) == 1
        assert not console.is_busy(entity)


class TestProperties:

    @pytest.mark.asyncio
    async def test_back_to_back_requests_send_one_call(self, console, novel_view, backend):
        """Back-to-back requests send a single call."""
        entity = novel_view.find(1)
        gate = backend.hold(entity.ref)

        first = asyncio.create_task(novel_view.request_transition(entity, ModerationAction.APPROVE, confirm_all))
        await asyncio.sleep(0)
        second = await novel_view.request_transition(entity, ModerationAction.APPROVE, confirm_all)
        assert second.status == OutcomeStatus.BUSY

        gate.set()
        assert (await first).ok
        assert backend.calls_for(entity.ref) == [ModerationAction.APPROVE]

    @pytest.mark.asyncio
    async def test_distinct_entities_run_in_parallel(self, console, novel_view, backend):
        """Different entities are processed concurrently."""
        one, two = novel_view.find(1), novel_view.find(2)
        gate_one = backend.hold(one.ref)
        gate_two = backend.hold(two.ref)

        tasks = [
            asyncio.create_task(novel_view.request_transition(one, ModerationAction.APPROVE, confirm_all)),
            asyncio.create_task(novel_view.request_transition(two, ModerationAction.REJECT, confirm_all)),
        ]
        await asyncio.sleep(0)
        assert console.is_busy(one) and console.is_busy(two)
        assert len(console.guard) == 2

        gate_two.set()
        gate_one.set()
        outcomes = await asyncio.gather(*tasks)
        assert all(o.ok for o in outcomes)
        assert len(console.guard) == 0

    @pytest.mark.asyncio
    async def test_busy_row_disables_every_action(self, console, novel_view, backend):
        """A busy row disables all its actions."""
        entity = novel_view.find(1)
        gate = backend.hold(entity.ref)
        task = asyncio.create_task(novel_view.request_transition(entity, ModerationAction.HIDE, confirm_all))
        await asyncio.sleep(0)

        row = novel_view.row_state(entity)
        assert row.busy_action == ModerationAction.HIDE
        assert row.actions
        assert not any(a.enabled for a in row.actions)
        assert [a.action for a in row.actions if a.in_progress] == [ModerationAction.HIDE]

        gate.set()
        await task
        row = novel_view.row_state(novel_view.find(1))
        assert row.busy_action is None
        assert row.entity.hidden is True
        assert all(a.enabled for a in row.actions)
        assert ModerationAction.UNHIDE in [a.action for a in row.actions]

    @pytest.mark.asyncio
    async def test_auth_error_clears_credentials(self, console, session, novel_view, backend):
        """An auth failure clears credentials."""
        entity = novel_view.find(1)
        backend.fail(entity.ref, TransportError("Unauthorized", 401))

        outcome = await novel_view.request_transition(entity, ModerationAction.APPROVE, confirm_all)

        assert outcome.error.error_class == ErrorClass.AUTH
        assert session.credentials is None
        assert session.is_expired

    @pytest.mark.asyncio
    async def test_unknown_failure_keeps_raw_message(self, console, novel_view, backend):
        """Unknown failures keep the raw server message."""
        entity = novel_view.find(2)
        backend.fail(entity.ref, TransportError("Reviewer quota exceeded for today", 403))

        outcome = await novel_view.request_transition(entity, ModerationAction.REJECT, confirm_all)

        assert outcome.error.error_class == ErrorClass.UNKNOWN
        assert outcome.error.raw_message == "Reviewer quota exceeded for today"
        assert console.current_error(entity) == outcome.error

    @pytest.mark.asyncio
    async def test_soft_delete_moves_category_to_deleted(self, console, category_view):
        """Soft delete leaves a terminal DELETED category."""
        poetry = category_view.find(2)

        outcome = await category_view.request_transition(poetry, ModerationAction.SOFT_DELETE, confirm_all)

        assert outcome.ok
        deleted = category_view.find(2)
        assert deleted.status == CategoryStatus.DELETED
        assert console.legal_actions(deleted) == frozenset()

    @pytest.mark.asyncio
    async def test_hard_delete_removes_category(self, category_view):
        """Hard delete removes the category from the page."""
        poetry = category_view.find(2)

        outcome = await category_view.request_transition(poetry, ModerationAction.HARD_DELETE, confirm_all)

        assert outcome.ok
        assert outcome.page.find(poetry.ref) is None

    @pytest.mark.asyncio
    async def test_console_routes_by_kind(self, console, novel_view, category_view, backend):
        """The console routes requests to the view of that kind."""
        western = category_view.find(3)
        outcome = await console.request_transition(western, ModerationAction.TOGGLE_STATUS, confirm_all)
        assert outcome.ok
        assert category_view.find(3).status == CategoryStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_reopening_view_discards_old_one(self, console, novel_view, backend):
        """Re-opening a view discards the old view's results."""
        entity = novel_view.find(1)
        gate = backend.hold(entity.ref)
        task = asyncio.create_task(novel_view.request_transition(entity, ModerationAction.APPROVE, confirm_all))
        await asyncio.sleep(0)

        fresh = console.open_view(EntityKind.NOVEL, backend.fetcher(EntityKind.NOVEL))
        gate.set()
        outcome = await task

        assert novel_view.closed
        assert outcome.status == OutcomeStatus.DISCARDED
        assert fresh.page is None
