from datetime import date

import pytest
from postgrest.exceptions import APIError

from copa import repository
from copa.errors import (
    DuplicateTeamError,
    InvalidScoreError,
    TeamInUseError,
    ValidationError,
)
from copa.models import MatchStatus, Team


def _seed(db):
    db.tables["teams"] = [
        {"id": "b", "name": "Bravo", "logo_url": None},
        {"id": "a", "name": "Alpha", "logo_url": "https://x/a.png"},
    ]
    db.tables["players"] = [
        {"id": "p1", "name": "Rafa", "jersey_number": 9, "position": "forward", "team_id": "a", "goals": 0},
        {"id": "p2", "name": "Caio", "jersey_number": 7, "position": "defender", "team_id": "b", "goals": 5},
    ]
    db.tables["matches"] = [
        {
            "id": "m1",
            "home_team_id": "a",
            "away_team_id": "b",
            "match_date": "2024-05-04T18:00:00+00:00",
            "location": None,
            "stage": "group_stage",
            "status": "finished",
            "home_score": 2,
            "away_score": 0,
        },
        {
            "id": "m2",
            "home_team_id": "b",
            "away_team_id": "a",
            "match_date": "2024-05-11T18:00:00+00:00",
            "location": None,
            "stage": "final",
            "status": "upcoming",
            "home_score": None,
            "away_score": None,
        },
    ]
    db.tables["goals"] = [{"id": "g1", "player_id": "p1", "match_id": "m1", "count": 2}]


def test_list_teams_sorted(fake_db):
    _seed(fake_db)
    assert [t.name for t in repository.list_teams()] == ["Alpha", "Bravo"]


def test_list_matches_filters_by_status(fake_db):
    _seed(fake_db)
    finished = repository.list_matches(MatchStatus.FINISHED)
    assert [m.id for m in finished] == ["m1"]
    assert [m.id for m in repository.list_matches()] == ["m1", "m2"]
    assert ("matches", "select", (("status", "finished"),)) in fake_db.calls


def test_load_snapshot(fake_db):
    _seed(fake_db)
    snap = repository.load_snapshot()
    assert len(snap.teams) == 2 and len(snap.players) == 2 and len(snap.matches) == 2
    assert snap.goals[0].count == 2


def test_read_error_becomes_runtime_error(fake_db):
    fake_db.errors[("teams", "select")] = APIError({"message": "boom", "code": "500"})
    with pytest.raises(RuntimeError, match="list_teams: boom"):
        repository.list_teams()


def test_create_team(fake_db):
    team = repository.create_team("  Leões ")
    assert team.name == "Leões"
    assert fake_db.tables["teams"][0]["name"] == "Leões"


def test_create_team_duplicate(fake_db):
    fake_db.errors[("teams", "insert")] = APIError({"message": "duplicate key", "code": "23505"})
    with pytest.raises(DuplicateTeamError):
        repository.create_team("Alpha")


def test_rename_team(fake_db):
    _seed(fake_db)
    assert repository.rename_team("a", "Alpha FC") == Team(id="a", name="Alpha FC", logo_url="https://x/a.png")
    with pytest.raises(RuntimeError):
        repository.rename_team("zzz", "Nobody")


def test_delete_team_guarded_by_matches(fake_db):
    _seed(fake_db)
    fake_db.tables["teams"].append({"id": "c", "name": "Charlie"})
    with pytest.raises(TeamInUseError):
        repository.delete_team("a")
    repository.delete_team("c")
    assert [t["id"] for t in fake_db.tables["teams"]] == ["b", "a"]


def test_create_player_rejects_taken_jersey(fake_db):
    _seed(fake_db)
    with pytest.raises(ValidationError, match="Jersey number 9"):
        repository.create_player(name="Other", jersey_number=9, position="forward", team_id="a")
    p = repository.create_player(name="Other", jersey_number=9, position="forward", team_id="b")
    assert p.team_id == "b" and p.goals == 0


def test_create_match(fake_db):
    m = repository.create_match(
        home_team_id="a", away_team_id="b", match_date=date(2024, 6, 1), match_time="10:00", stage="final"
    )
    assert m.status is MatchStatus.SCHEDULED
    stored = fake_db.tables["matches"][0]
    assert stored["match_date"] == "2024-06-01T13:00:00+00:00"
    assert stored["stage"] == "final"


def test_record_goal_persists_score_and_event(fake_db):
    _seed(fake_db)
    m2 = next(m for m in repository.list_matches() if m.id == "m2")
    live = repository.change_status(m2, "live")
    live = repository.record_goal(live, "away", "p1")
    assert (live.home_score, live.away_score) == (0, 1)
    row = next(r for r in fake_db.tables["matches"] if r["id"] == "m2")
    assert row["status"] == "live" and row["away_score"] == 1
    assert {"player_id": "p1", "match_id": "m2", "count": 1}.items() <= fake_db.tables["goals"][-1].items()


def test_failed_transition_writes_nothing(fake_db):
    _seed(fake_db)
    m2 = next(m for m in repository.list_matches() if m.id == "m2")
    fake_db.calls.clear()
    with pytest.raises(InvalidScoreError):
        repository.change_status(m2, "finished")
    assert not [c for c in fake_db.calls if c[1] == "update"]


def test_sync_player_goals(fake_db):
    _seed(fake_db)
    assert repository.sync_player_goals() == 2
    goals = {r["id"]: r["goals"] for r in fake_db.tables["players"]}
    assert goals == {"p1": 2, "p2": 0}
    assert repository.sync_player_goals() == 0


def test_delete_goals(fake_db):
    _seed(fake_db)
    repository.delete_goals("m1")
    assert fake_db.tables["goals"] == []
    with pytest.raises(ValueError):
        repository.delete_goals("")


def _live_m2(db):
    _seed(db)
    m2 = next(m for m in repository.list_matches() if m.id == "m2")
    return repository.change_status(m2, "live")


def test_record_goal_rejects_scorer_from_other_side(fake_db):
    live = _live_m2(fake_db)
    fake_db.calls.clear()
    # p1 plays for "a", the away side of m2
    with pytest.raises(ValidationError, match="does not play for the home team"):
        repository.record_goal(live, "home", "p1")
    with pytest.raises(ValidationError, match="Unknown player"):
        repository.record_goal(live, "away", "ghost")
    assert not [c for c in fake_db.calls if c[1] in ("insert", "update")]


def test_record_goal_own_goal_needs_no_scorer(fake_db):
    live = _live_m2(fake_db)
    live = repository.record_goal(live, "home")
    assert (live.home_score, live.away_score) == (1, 0)
    assert [r["id"] for r in fake_db.tables["goals"]] == ["g1"]


def test_failed_goal_insert_leaves_score_untouched(fake_db):
    live = _live_m2(fake_db)
    fake_db.errors[("goals", "insert")] = APIError({"message": "boom", "code": "500"})
    with pytest.raises(RuntimeError, match="insert_goal: boom"):
        repository.record_goal(live, "away", "p1")
    row = next(r for r in fake_db.tables["matches"] if r["id"] == "m2")
    assert (row["home_score"], row["away_score"]) == (0, 0)
    assert [r["id"] for r in fake_db.tables["goals"]] == ["g1"]


def test_failed_score_save_removes_goal_event(fake_db):
    live = _live_m2(fake_db)
    fake_db.errors[("matches", "update")] = APIError({"message": "boom", "code": "500"})
    with pytest.raises(RuntimeError, match="save_match: boom"):
        repository.record_goal(live, "away", "p1")
    row = next(r for r in fake_db.tables["matches"] if r["id"] == "m2")
    assert (row["home_score"], row["away_score"]) == (0, 0)
    assert [r["id"] for r in fake_db.tables["goals"]] == ["g1"]


def _stored_goals(db):
    return {r["id"]: r["goals"] for r in db.tables["players"]}


def test_finishing_and_reopening_sync_player_goals(fake_db):
    live = _live_m2(fake_db)
    live = repository.record_goal(live, "away", "p1")
    assert _stored_goals(fake_db) == {"p1": 0, "p2": 5}

    done = repository.change_status(live, "finished")
    assert _stored_goals(fake_db) == {"p1": 3, "p2": 0}
    assert {p.id: p.goals for p in repository.list_players()} == {"p1": 3, "p2": 0}

    repository.change_status(done, "live", is_admin=True)
    assert _stored_goals(fake_db) == {"p1": 2, "p2": 0}
