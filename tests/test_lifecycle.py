from datetime import timedelta

import pytest

from copa import lifecycle
from copa.errors import InvalidScoreError, InvalidTransitionError, ReopenDeniedError, ValidationError
from copa.models import MatchStatus, Stage

from conftest import KICKOFF, finished, scheduled


def test_start_sets_running_score():
    m = lifecycle.start(scheduled("m1", "a", "b"))
    assert m.status is MatchStatus.LIVE
    assert (m.home_score, m.away_score) == (0, 0)


def test_record_goal_returns_event_for_named_scorer():
    live = lifecycle.start(scheduled("m1", "a", "b"))
    live, event = lifecycle.record_goal(live, "home", "p1")
    live, own_goal = lifecycle.record_goal(live, "away")
    assert (live.home_score, live.away_score) == (1, 1)
    assert event.player_id == "p1" and event.match_id == "m1" and event.count == 1
    assert own_goal is None


def test_record_goal_requires_live_match():
    with pytest.raises(InvalidTransitionError):
        lifecycle.record_goal(scheduled("m1", "a", "b"), "home", "p1")


def test_finish_from_live_keeps_running_score():
    live = lifecycle.set_score(lifecycle.start(scheduled("m1", "a", "b")), 2, 1)
    done = lifecycle.finish(live)
    assert done.status is MatchStatus.FINISHED
    assert (done.home_score, done.away_score) == (2, 1)


def test_backfill_finish_from_scheduled():
    done = lifecycle.finish(scheduled("m1", "a", "b"), home_score=3, away_score=0)
    assert done.is_finished and done.home_score == 3


def test_finish_with_missing_score_leaves_match_unchanged():
    match = scheduled("m1", "a", "b")
    with pytest.raises(InvalidScoreError):
        lifecycle.finish(match, away_score=1)
    assert match.status is MatchStatus.SCHEDULED
    assert match.home_score is None


def test_finish_with_negative_score_fails():
    live = lifecycle.start(scheduled("m1", "a", "b"))
    with pytest.raises(InvalidScoreError):
        lifecycle.finish(live, home_score=-1, away_score=0)
    with pytest.raises(InvalidScoreError):
        lifecycle.set_score(live, 0, -2)


def test_finished_match_cannot_go_live_without_admin():
    done = finished("m1", "a", "b", 1, 0)
    with pytest.raises(ReopenDeniedError) as via_transition:
        lifecycle.transition(done, "live")
    with pytest.raises(ReopenDeniedError) as via_reopen:
        lifecycle.reopen(done, is_admin=False)
    for excinfo in (via_transition, via_reopen):
        assert isinstance(excinfo.value, InvalidTransitionError)
        assert isinstance(excinfo.value, PermissionError)
    assert not lifecycle.can_transition(done.status, MatchStatus.LIVE)


def test_admin_reopen_keeps_score_as_running_count():
    reopened = lifecycle.transition(finished("m1", "a", "b", 1, 0), MatchStatus.LIVE, is_admin=True)
    assert reopened.status is MatchStatus.LIVE
    assert (reopened.home_score, reopened.away_score) == (1, 0)


def test_reopen_only_applies_to_finished():
    with pytest.raises(InvalidTransitionError):
        lifecycle.reopen(scheduled("m1", "a", "b"), is_admin=True)


@pytest.mark.parametrize("op", [lifecycle.postpone, lifecycle.cancel])
def test_side_branches_clear_scores(op):
    live = lifecycle.set_score(lifecycle.start(scheduled("m1", "a", "b")), 1, 1)
    out = op(live)
    assert out.home_score is None and out.away_score is None


@pytest.mark.parametrize("target", ["live", "finished", "postponed", "scheduled"])
def test_cancelled_is_terminal(target):
    cancelled = lifecycle.cancel(scheduled("m1", "a", "b"))
    extra = {"scheduled_at": KICKOFF} if target == "scheduled" else {}
    with pytest.raises(InvalidTransitionError):
        lifecycle.transition(cancelled, target, is_admin=True, **extra)


def test_cannot_postpone_finished_match():
    with pytest.raises(InvalidTransitionError):
        lifecycle.postpone(finished("m1", "a", "b", 0, 0))


def test_reschedule_postponed_match():
    postponed = lifecycle.postpone(scheduled("m1", "a", "b"))
    later = KICKOFF + timedelta(days=7)
    back = lifecycle.transition(postponed, "scheduled", scheduled_at=later)
    assert back.status is MatchStatus.SCHEDULED
    assert back.scheduled_at == later


def test_edit_fixture_only_before_kickoff():
    match = scheduled("m1", "a", "b")
    edited = lifecycle.edit_fixture(match, venue="Quadra 2", stage="final")
    assert edited.venue == "Quadra 2" and edited.stage is Stage.FINAL
    with pytest.raises(ValidationError):
        lifecycle.edit_fixture(match, away_team_id="a")
    with pytest.raises(InvalidTransitionError):
        lifecycle.edit_fixture(lifecycle.start(match), venue="x")


def test_group_by_status_orders_listings():
    matches = [
        scheduled("s2", "a", "b", day=9),
        scheduled("s1", "c", "d", day=8),
        finished("f1", "a", "c", 1, 0, day=1),
        finished("f2", "b", "d", 2, 2, day=3),
        lifecycle.start(scheduled("l1", "a", "d", day=5)),
        lifecycle.cancel(scheduled("x1", "b", "c", day=6)),
    ]
    groups = lifecycle.group_by_status(matches)
    assert [m.id for m in groups["upcoming"]] == ["s1", "s2"]
    assert [m.id for m in groups["finished"]] == ["f2", "f1"]
    assert [m.id for m in groups["live"]] == ["l1"]
    assert [m.id for m in groups["cancelled"]] == ["x1"]
    assert groups["postponed"] == []
