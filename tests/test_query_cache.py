from unittest.mock import MagicMock

import pytest

from infrastructure.query_cache import INVALIDATIONS, Mutation, QueryCache, QueryKey, QueryResult


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return QueryCache(clock=clock, sleep=MagicMock())


def test_fresh_entry_is_served_without_refetch(cache, clock):
    fn = MagicMock(return_value=42)
    assert cache.fetch(QueryKey.IS_ADMIN, fn, stale_time=60).data == 42
    clock.now += 30
    assert cache.fetch(QueryKey.IS_ADMIN, fn, stale_time=60).data == 42
    fn.assert_called_once()


def test_stale_entry_is_refetched(cache, clock):
    fn = MagicMock(side_effect=[1, 2])
    cache.fetch(QueryKey.IS_ADMIN, fn, stale_time=60)
    clock.now += 61
    assert cache.fetch(QueryKey.IS_ADMIN, fn, stale_time=60).data == 2


def test_failure_is_cached_while_fresh_and_refetched_when_stale(cache, clock):
    fn = MagicMock(side_effect=[RuntimeError("boom"), True])
    first = cache.fetch(QueryKey.IS_ADMIN, fn, stale_time=60)
    assert first.is_error
    clock.now += 30
    assert cache.fetch(QueryKey.IS_ADMIN, fn, stale_time=60).is_error
    assert fn.call_count == 1

    clock.now += 31
    result = cache.fetch(QueryKey.IS_ADMIN, fn, stale_time=60)
    assert result.data is True
    assert not result.is_error
    assert fn.call_count == 2


def test_failure_is_refetched_after_invalidate(cache):
    fn = MagicMock(side_effect=[RuntimeError("boom"), True])
    assert cache.fetch(QueryKey.IS_ADMIN, fn, stale_time=60).is_error

    cache.invalidate(QueryKey.IS_ADMIN)
    result = cache.fetch(QueryKey.IS_ADMIN, fn, stale_time=60)
    assert result.data is True


def test_transport_blip_on_agent_directory_recovers_once_stale(cache, clock):
    from infrastructure.actor_client import ActorTransportError
    from services import agent_service

    actor = MagicMock()
    actor.get_all_agent_profiles.side_effect = [ActorTransportError("blip"), []]

    assert agent_service.all_agent_profiles(actor, cache).is_error
    clock.now += 3600
    result = agent_service.all_agent_profiles(actor, cache)
    assert not result.is_error
    assert result.data == []
    assert actor.get_all_agent_profiles.call_count == 2


def test_retry_then_success(cache):
    fn = MagicMock(side_effect=[RuntimeError("flaky"), {"name": "Asha"}])
    result = cache.fetch(QueryKey.CURRENT_USER_PROFILE, fn, retry=1, retry_delay=1.0)
    assert result.data == {"name": "Asha"}
    cache.sleep.assert_called_once_with(1.0)


def test_retry_exhausted_records_last_error(cache):
    fn = MagicMock(side_effect=[RuntimeError("one"), RuntimeError("two")])
    result = cache.fetch(QueryKey.CURRENT_USER_PROFILE, fn, retry=1)
    assert str(result.error) == "two"
    assert fn.call_count == 2


def test_force_bypasses_fresh_entry(cache):
    fn = MagicMock(side_effect=[1, 2])
    cache.fetch(QueryKey.IS_ADMIN, fn, stale_time=600)
    assert cache.fetch(QueryKey.IS_ADMIN, fn, stale_time=600, force=True).data == 2


def test_params_are_cached_separately_and_invalidated_together(cache):
    fn_a = MagicMock(return_value=["a"])
    fn_b = MagicMock(return_value=["b"])
    cache.fetch(QueryKey.LEADS_BY_AGENT, fn_a, params=("111",), stale_time=600)
    cache.fetch(QueryKey.LEADS_BY_AGENT, fn_b, params=("222",), stale_time=600)
    assert cache.peek(QueryKey.LEADS_BY_AGENT, ("111",)).data == ["a"]
    assert cache.peek(QueryKey.LEADS_BY_AGENT, ("222",)).data == ["b"]

    cache.invalidate_for(Mutation.ADD_LEAD)
    cache.fetch(QueryKey.LEADS_BY_AGENT, fn_a, params=("111",), stale_time=600)
    cache.fetch(QueryKey.LEADS_BY_AGENT, fn_b, params=("222",), stale_time=600)
    assert fn_a.call_count == 2
    assert fn_b.call_count == 2


def test_peek_unknown_key_is_empty_result(cache):
    assert cache.peek(QueryKey.ALL_LEADS) == QueryResult()


def test_clear_drops_everything(cache):
    cache.fetch(QueryKey.IS_ADMIN, lambda: True)
    cache.clear()
    assert cache.peek(QueryKey.IS_ADMIN).is_fetched is False


def test_approve_invalidates_agent_directory():
    assert set(INVALIDATIONS[Mutation.APPROVE_AGENT]) == {
        QueryKey.ALL_AGENT_PROFILES,
        QueryKey.PENDING_AGENTS,
        QueryKey.APPROVED_AGENTS,
        QueryKey.AGENT_LOGIN_TIMES,
    }
    assert INVALIDATIONS[Mutation.REJECT_AGENT] == INVALIDATIONS[Mutation.APPROVE_AGENT]


def test_every_mutation_has_an_invalidation_entry():
    assert set(INVALIDATIONS) == set(Mutation)
    for keys in INVALIDATIONS.values():
        assert keys
        assert all(isinstance(k, QueryKey) for k in keys)


def test_invalidate_for_returns_keys(cache):
    assert cache.invalidate_for(Mutation.SAVE_PROFILE) == (QueryKey.CURRENT_USER_PROFILE,)
