from datetime import datetime, timezone
import uuid

import pytest

from copa.models import GoalEvent, Match, MatchStatus, Player, Position, Team


# ---------------- In-memory Supabase mock ----------------
class FakeTable:
    def __init__(self, name, db):
        self.name = name
        self.db = db
        self._data = db.tables.setdefault(name, [])
        self._op = "select"
        self._payload = None
        self._filters = []
        self._order = None
        self._limit = None

    def select(self, *args, **kwargs):
        self.db.calls.append((self.name, "select", args[0] if args else "*"))
        return self

    def insert(self, item):
        self._op = "insert"
        self._payload = item
        return self

    def update(self, data):
        self._op = "update"
        self._payload = dict(data)
        return self

    def delete(self):
        self._op = "delete"
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self._order = (column, bool(desc))
        return self

    def limit(self, n):
        self._limit = n
        return self

    def _matches(self, row):
        return all(row.get(col) == val for col, val in self._filters)

    def execute(self):
        self.db.calls.append((self.name, self._op, tuple(self._filters)))
        error = self.db.errors.get((self.name, self._op))
        if error is not None:
            raise error
        if self._op == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            stored = []
            for item in items:
                row = dict(item)
                row.setdefault("id", uuid.uuid4().hex)
                self._data.append(row)
                stored.append(dict(row))
            return type("Res", (), {"data": stored})()
        if self._op == "update":
            out = []
            for row in self._data:
                if self._matches(row):
                    row.update(self._payload)
                    out.append(dict(row))
            return type("Res", (), {"data": out})()
        if self._op == "delete":
            removed = [dict(r) for r in self._data if self._matches(r)]
            self._data[:] = [r for r in self._data if not self._matches(r)]
            return type("Res", (), {"data": removed})()
        data = [dict(r) for r in self._data if self._matches(r)]
        if self._order:
            col, desc = self._order
            data.sort(key=lambda r: (r.get(col) is None, r.get(col) or ""), reverse=desc)
        if self._limit is not None:
            data = data[: self._limit]
        return type("Res", (), {"data": data})()


class FakeClient:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.errors = {}

    def table(self, name):
        return FakeTable(name, self)


@pytest.fixture
def fake_db(monkeypatch):
    from copa import repository

    client = FakeClient()
    monkeypatch.setattr(repository, "get_client", lambda: client)
    monkeypatch.setattr(repository, "clear_data_cache", lambda: None)
    monkeypatch.setattr(repository, "notify_error", lambda msg: None)
    return client


# ---------------- record builders ----------------
KICKOFF = datetime(2024, 5, 4, 18, 0, tzinfo=timezone.utc)


def team(tid, name=None):
    return Team(id=tid, name=name or tid.upper())


def player(pid, team_id, name=None, number=9, goals=0):
    return Player(
        id=pid,
        name=name or pid.title(),
        jersey_number=number,
        position=Position.FORWARD,
        team_id=team_id,
        goals=goals,
    )


def finished(mid, home, away, hs, as_, day=1):
    return Match(
        id=mid,
        home_team_id=home,
        away_team_id=away,
        scheduled_at=KICKOFF.replace(day=day),
        status=MatchStatus.FINISHED,
        home_score=hs,
        away_score=as_,
    )


def scheduled(mid, home, away, day=1):
    return Match(id=mid, home_team_id=home, away_team_id=away, scheduled_at=KICKOFF.replace(day=day))


def goal(pid, mid, count=1):
    return GoalEvent(player_id=pid, match_id=mid, count=count)
