from __future__ import annotations

import threading

import pytest

from shelfsync.domain.errors import (
    InvalidTransitionError,
    MergeConflict,
    ReviewInProgressError,
)
from shelfsync.domain.reconciliation.review import (
    DuplicateReviewSession,
    GoTo,
    Merge,
    NotDuplicates,
    ReviewDecision,
    ReviewState,
    Skip,
    build_keep_map,
    find_next_pending,
    merge_all_duplicates,
)
from tests.helpers.fakes import FakeCatalogStore, make_group


def test_default_keep_map_keeps_oldest_and_merge_deletes_the_rest() -> None:
    group = make_group("sapiens", 3)
    store = FakeCatalogStore(groups=[group])
    session = DuplicateReviewSession([group], store=store)

    assert session.keep_map == {"sapiens-0": True, "sapiens-1": False, "sapiens-2": False}

    session.merge_current()

    assert store.merges == [("sapiens-0", ("sapiens-1", "sapiens-2"))]
    assert session.decision(0) is ReviewDecision.MERGED
    assert session.stats.merged == 1
    assert session.stats.total_deleted == 2
    assert session.state is ReviewState.COMPLETE


def test_merge_all_is_a_single_store_call() -> None:
    groups = [make_group(f"group{i}", 3) for i in range(5)]
    store = FakeCatalogStore(groups=groups)

    result = merge_all_duplicates(store)

    assert (result.groups_merged, result.total_deleted) == (5, 10)
    assert store.merge_all_calls == 1
    assert store.merges == []


def test_every_terminal_decision_completes_the_session() -> None:
    groups = [make_group(f"group{i}", 2) for i in range(3)]
    session = DuplicateReviewSession(groups, store=FakeCatalogStore(groups=groups))

    session.dispatch(Skip(0))
    session.dispatch(NotDuplicates(1))
    session.merge_current()

    assert session.is_complete
    assert session.decisions == (
        ReviewDecision.SKIPPED,
        ReviewDecision.NOT_DUPLICATES,
        ReviewDecision.MERGED,
    )
    assert session.current_group is None
    assert (session.stats.skipped, session.stats.not_duplicates, session.stats.merged) == (1, 1, 1)


def test_untoggling_the_last_kept_item_is_a_no_op() -> None:
    group = make_group("dune", 2)
    session = DuplicateReviewSession([group], store=FakeCatalogStore())

    assert session.toggle_keep("dune-0") is True
    assert session.keep_map == {"dune-0": True, "dune-1": False}

    assert session.toggle_keep("dune-1") is True
    assert session.toggle_keep("dune-0") is False
    assert session.toggle_keep("dune-1") is True
    assert sum(session.keep_map.values()) == 1


def test_toggle_rejects_items_outside_the_open_group() -> None:
    session = DuplicateReviewSession([make_group("dune", 2)], store=FakeCatalogStore())

    with pytest.raises(InvalidTransitionError):
        session.toggle_keep("someone-else")


def test_merge_uses_the_toggled_keep_map() -> None:
    group = make_group("dune", 3)
    store = FakeCatalogStore()
    session = DuplicateReviewSession([group], store=store)

    session.toggle_keep("dune-2")
    session.toggle_keep("dune-0")
    session.merge_current()

    assert store.merges == [("dune-2", ("dune-0", "dune-1"))]


def test_failed_merge_leaves_group_pending_with_error() -> None:
    group = make_group("dune", 2)
    store = FakeCatalogStore()
    store.merge_error = MergeConflict("stale group")
    session = DuplicateReviewSession([group], store=store)

    session.merge_current()

    assert session.decision(0) is ReviewDecision.PENDING
    assert session.error is not None
    assert "stale group" in session.error
    assert session.state is ReviewState.REVIEWING

    store.merge_error = None
    session.merge_current()

    assert session.error is None
    assert session.decision(0) is ReviewDecision.MERGED


def test_decided_groups_cannot_be_decided_again() -> None:
    groups = [make_group("a", 2), make_group("b", 2)]
    session = DuplicateReviewSession(groups, store=FakeCatalogStore())
    session.dispatch(Skip(0))

    with pytest.raises(InvalidTransitionError):
        session.dispatch(NotDuplicates(0))


def test_merge_events_are_validated_against_the_group() -> None:
    session = DuplicateReviewSession([make_group("a", 2)], store=FakeCatalogStore())

    with pytest.raises(InvalidTransitionError):
        session.dispatch(Merge(0, "a-0", ()))
    with pytest.raises(InvalidTransitionError):
        session.dispatch(Merge(0, "a-0", ("a-0",)))
    with pytest.raises(InvalidTransitionError):
        session.dispatch(Merge(0, "a-0", ("intruder",)))


def test_goto_moves_and_is_bounds_checked() -> None:
    groups = [make_group("a", 2), make_group("b", 3)]
    session = DuplicateReviewSession(groups, store=FakeCatalogStore())

    session.dispatch(GoTo(1))
    assert session.current_index == 1
    assert session.keep_map == {"b-0": True, "b-1": False, "b-2": False}

    with pytest.raises(InvalidTransitionError):
        session.dispatch(GoTo(2))


def test_advancing_wraps_around_to_earlier_pending_groups() -> None:
    groups = [make_group(name, 2) for name in ("a", "b", "c")]
    session = DuplicateReviewSession(groups, store=FakeCatalogStore())

    session.dispatch(GoTo(2))
    session.dispatch(Skip(2))

    assert session.current_index == 0


def test_find_next_pending() -> None:
    pending, done = ReviewDecision.PENDING, ReviewDecision.SKIPPED

    assert find_next_pending([pending, done, pending], 0) == 2
    assert find_next_pending([pending, done, done], 2) == 0
    assert find_next_pending([done, done], 0) == 2


def test_build_keep_map_marks_only_the_first_item() -> None:
    assert build_keep_map(make_group("x", 3)) == {"x-0": True, "x-1": False, "x-2": False}


def test_concurrent_transition_is_rejected() -> None:
    entered = threading.Event()
    release = threading.Event()

    class SlowStore(FakeCatalogStore):
        def merge_duplicates(self, keep_id, delete_ids):  # noqa: ANN001, ANN202
            entered.set()
            release.wait(timeout=5)
            return super().merge_duplicates(keep_id, delete_ids)

    groups = [make_group("a", 2), make_group("b", 2)]
    session = DuplicateReviewSession(groups, store=SlowStore())
    worker = threading.Thread(target=session.merge_current)
    worker.start()
    try:
        assert entered.wait(timeout=5)
        assert session.is_busy
        with pytest.raises(ReviewInProgressError):
            session.dispatch(Skip(1))
    finally:
        release.set()
        worker.join(timeout=5)

    assert session.decision(0) is ReviewDecision.MERGED
    assert session.decision(1) is ReviewDecision.PENDING
