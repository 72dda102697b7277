"""
Tests for completion rate limiting.

Counting is checked against a small in-memory stand-in for the Redis
pipeline; the HTTP tests confirm that the limit is per (actor, client)
and that a limited request never reaches the advancer.
"""
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from core import rate_limit
from core.config import settings
from models import CoachClient, ProgramDayCompletion

MARK_COMPLETE = "/v1/coach/pickup/mark-complete"
CLIENT_COMPLETE = "/v1/client/program-progress/complete"


class CountingRedis:
    """Just enough of redis-py's MULTI pipeline for SET NX EX / INCR / TTL."""

    def __init__(self, ttl: int = 60):
        self.counts = {}
        self.ttl = ttl
        self.pipelines = 0

    def pipeline(self):
        self.pipelines += 1
        return _Pipeline(self)


class _Pipeline:

    def __init__(self, store: CountingRedis):
        self.store = store
        self.ops = []

    def set(self, key, value, nx=False, ex=None):
        self.ops.append(("set", key, value, nx, ex))

    def incr(self, key):
        self.ops.append(("incr", key))

    def ttl(self, key):
        self.ops.append(("ttl", key))

    def execute(self):
        results = []
        for op in self.ops:
            name, key = op[0], op[1]
            if name == "set":
                _, _, value, nx, _ = op
                if nx and key in self.store.counts:
                    results.append(None)
                else:
                    self.store.counts[key] = int(value)
                    results.append(True)
            elif name == "incr":
                self.store.counts[key] = self.store.counts.get(key, 0) + 1
                results.append(self.store.counts[key])
            else:
                results.append(self.store.ttl)
        return results


class TestHit:

    def test_fails_open_without_redis(self, monkeypatch):
        monkeypatch.setattr(rate_limit, "get_redis_client", lambda: None)

        state = rate_limit.hit("k", limit=3)

        assert state.allowed
        assert state.remaining == 3

    def test_window_opens_and_counts_in_one_round_trip(self, monkeypatch):
        redis_client = MagicMock()
        pipe = redis_client.pipeline.return_value
        pipe.execute.return_value = [True, 1, 60]
        monkeypatch.setattr(rate_limit, "get_redis_client", lambda: redis_client)

        state = rate_limit.hit("k", limit=30, window=60)

        assert state.allowed
        assert state.remaining == 29
        pipe.set.assert_called_once_with("k", 0, nx=True, ex=60)
        pipe.incr.assert_called_once_with("k")
        pipe.execute.assert_called_once()
        redis_client.get.assert_not_called()

    def test_over_limit(self, monkeypatch):
        store = CountingRedis(ttl=42)
        monkeypatch.setattr(rate_limit, "get_redis_client", lambda: store)

        states = [rate_limit.hit("k", limit=2) for _ in range(3)]

        assert [s.allowed for s in states] == [True, True, False]
        assert states[-1].remaining == 0
        assert store.counts["k"] == 3

    def test_existing_window_is_not_reset(self, monkeypatch):
        store = CountingRedis()
        store.counts["k"] = 5
        monkeypatch.setattr(rate_limit, "get_redis_client", lambda: store)

        state = rate_limit.hit("k", limit=5)

        assert not state.allowed
        assert store.counts["k"] == 6

    def test_redis_errors_fail_open(self, monkeypatch):
        redis_client = MagicMock()
        redis_client.pipeline.return_value.execute.side_effect = RuntimeError("READONLY")
        monkeypatch.setattr(rate_limit, "get_redis_client", lambda: redis_client)

        assert rate_limit.hit("k", limit=1).allowed

    def test_keys_are_per_actor_and_client(self):
        actor, client_a, client_b = uuid4(), uuid4(), uuid4()

        assert rate_limit.completion_key(actor, client_a) != rate_limit.completion_key(actor, client_b)
        assert rate_limit.completion_key(actor, client_a) != rate_limit.completion_key(client_a, client_a)


class TestCompletionEndpoints:

    @pytest.fixture
    def store(self, monkeypatch):
        store = CountingRedis()
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
        monkeypatch.setattr(settings, "COMPLETION_RATE_LIMIT_PER_MINUTE", 2)
        monkeypatch.setattr(rate_limit, "get_redis_client", lambda: store)
        return store

    @pytest.fixture
    def program(self, coach, make_program):
        return make_program(coach, {1: [1, 2, 3, 4, 5]})

    def test_coach_limit_is_per_client(
        self, client, db_session, store, coach, client_profile, program,
        make_profile, make_assignment, auth_headers,
    ):
        second_client = make_profile("client", "Second Client")
        db_session.add(CoachClient(coach_id=coach.id, client_id=second_client.id))
        db_session.commit()
        make_assignment(client_profile, coach, program)
        make_assignment(second_client, coach, program)
        headers = auth_headers(coach)

        codes = [
            client.post(MARK_COMPLETE, json={"clientId": str(client_profile.id)}, headers=headers).status_code
            for _ in range(3)
        ]
        other = client.post(MARK_COMPLETE, json={"clientId": str(second_client.id)}, headers=headers)

        assert codes == [200, 200, 429]
        assert other.status_code == 200

    def test_limited_request_does_not_advance(
        self, client, db_session, store, client_profile, coach, program, make_assignment, auth_headers,
    ):
        make_assignment(client_profile, coach, program)
        headers = auth_headers(client_profile)
        client.post(CLIENT_COMPLETE, headers=headers)
        client.post(CLIENT_COMPLETE, headers=headers)

        response = client.post(CLIENT_COMPLETE, headers=headers)

        assert response.status_code == 429
        assert response.json()["detail"] == "Rate limit exceeded"
        assert response.headers["X-RateLimit-Limit"] == "2"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert int(response.headers["Retry-After"]) >= 0
        assert db_session.query(ProgramDayCompletion).count() == 2

    def test_client_and_coach_budgets_are_separate(
        self, client, store, client_profile, coach, program, make_assignment, auth_headers,
    ):
        make_assignment(client_profile, coach, program)
        for _ in range(2):
            client.post(CLIENT_COMPLETE, headers=auth_headers(client_profile))

        response = client.post(
            MARK_COMPLETE,
            json={"clientId": str(client_profile.id)},
            headers=auth_headers(coach),
        )

        assert response.status_code == 200

    def test_foreign_client_is_rejected_before_counting(
        self, client, store, client_profile, make_profile, auth_headers,
    ):
        response = client.post(
            MARK_COMPLETE,
            json={"clientId": str(client_profile.id)},
            headers=auth_headers(make_profile("coach", "Other Coach")),
        )

        assert response.status_code == 403
        assert store.pipelines == 0

    def test_disabled_skips_redis(self, client, monkeypatch, client_profile, coach, program, make_assignment, auth_headers):
        redis_client = MagicMock()
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
        monkeypatch.setattr(rate_limit, "get_redis_client", lambda: redis_client)
        make_assignment(client_profile, coach, program)

        assert client.post(CLIENT_COMPLETE, headers=auth_headers(client_profile)).status_code == 200
        redis_client.pipeline.assert_not_called()
