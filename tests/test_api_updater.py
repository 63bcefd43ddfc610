import json
import logging

import pytest
import requests

from promriak.api.caching.cache_cell import CachedEntry
from promriak.api.services import updater as mod
from promriak.api.state import Instance

from conftest import make_descriptor


class _StopLoop(Exception):
    pass


def test_run_cycle_success_updates_cache(instance, fake_session_factory):
    payload = {"vnode_gets": 10, "connected_nodes": ["x", "y"], "nodename": "riak@a"}
    session = fake_session_factory(lambda url: json.dumps(payload))

    assert mod.run_cycle(session, instance) is True

    entry = instance.cache.get()
    assert entry is not None
    assert b"riak_vnode_gets 10\n\n" in entry.value
    assert b"riak_available_nodes_count 3\n\n" in entry.value
    assert b"nodename" not in entry.value
    assert session.calls[0].url == instance.config.endpoint
    assert session.calls[0].timeout == mod.FETCH_TIMEOUT_S


def test_run_cycle_fetch_failure_keeps_previous_value(instance, fake_session_factory, timeout_router, caplog):
    instance.cache.put(b"old", now=1.0)
    session = fake_session_factory(timeout_router)

    with caplog.at_level(logging.WARNING, logger="promriak"):
        assert mod.run_cycle(session, instance) is False

    assert instance.cache.get() == CachedEntry(last_update=1.0, value=b"old")
    rec = next(r for r in caplog.records if r.getMessage() == "get_stats_fail")
    assert rec.instance == "local"
    assert "Timeout" in rec.error


@pytest.mark.parametrize("body", ["<html>nope</html>", "[1, 2, 3]", '{"a": NaN}', ""])
def test_run_cycle_bad_body_is_a_fetch_failure(instance, fake_session_factory, body):
    session = fake_session_factory(lambda url: body)
    assert mod.run_cycle(session, instance) is False
    assert instance.cache.get() is None


def test_run_cycle_render_failure_keeps_previous_value(instance, fake_session_factory, monkeypatch, caplog):
    instance.cache.put(b"old", now=1.0)
    session = fake_session_factory(lambda url: '{"a": 1}')

    def boom(stats, cfg):
        raise RuntimeError("render broke")

    monkeypatch.setattr(mod, "render_stats", boom)
    with caplog.at_level(logging.WARNING, logger="promriak"):
        assert mod.run_cycle(session, instance) is False

    assert instance.cache.get() == CachedEntry(last_update=1.0, value=b"old")
    assert any(r.getMessage() == "update_stats_fail" for r in caplog.records)


def test_get_stats_wraps_request_exceptions(fake_session_factory):
    def router(url):
        raise requests.ConnectionError("refused")

    with pytest.raises(mod.FetchError):
        mod.get_stats(fake_session_factory(router), "http://x/stats")


def test_update_loop_sleeps_scrape_interval_after_every_cycle(fake_session_factory, timeout_router, monkeypatch):
    inst = Instance(config=make_descriptor(scrape_interval=0.25))
    session = fake_session_factory(timeout_router)
    events: list[str] = []

    def fake_sleep(seconds):
        events.append(f"sleep:{seconds}")
        if len(events) >= 6:
            raise _StopLoop()

    orig_get = session.get

    def counting_get(url, timeout=None):
        events.append("fetch")
        return orig_get(url, timeout=timeout)

    session.get = counting_get
    monkeypatch.setattr(mod.time, "sleep", fake_sleep)

    with pytest.raises(_StopLoop):
        mod.update_loop(session, inst)

    assert events == ["fetch", "sleep:0.25"] * 3


def test_start_instance_updaters_one_thread_per_instance(monkeypatch):
    started: list[str] = []
    monkeypatch.setattr(mod, "update_loop", lambda session, instance: started.append(instance.id))

    instances = {
        "a": Instance(config=make_descriptor(id="a")),
        "b": Instance(config=make_descriptor(id="b")),
    }
    threads = mod.start_instance_updaters(instances, session=object())
    for t in threads:
        t.join(timeout=5)

    assert sorted(t.name for t in threads) == ["updater-a", "updater-b"]
    assert all(t.daemon for t in threads)
    assert sorted(started) == ["a", "b"]


def test_build_session_sets_user_agent_and_no_retries():
    session = mod.build_session()
    assert session.headers["User-Agent"] == mod.USER_AGENT
    assert session.get_adapter("http://x").max_retries.total == 0


def test_run_cycle_deeply_nested_body_is_a_fetch_failure(instance, fake_session_factory):
    session = fake_session_factory(lambda url: "[" * 200000)
    assert mod.run_cycle(session, instance) is False
    assert instance.cache.get() is None


def test_update_loop_survives_bad_bodies_and_unexpected_errors(fake_session_factory, monkeypatch, caplog):
    inst = Instance(config=make_descriptor(scrape_interval=0.0))
    bodies = iter(["[" * 200000, '{"a": 1}'])
    session = fake_session_factory(lambda url: next(bodies))
    real_run_cycle = mod.run_cycle
    cycles: list[bool] = []

    def flaky_run_cycle(session, instance):
        if not cycles:
            cycles.append(False)
            raise RuntimeError("unexpected")
        cycles.append(real_run_cycle(session, instance))
        return cycles[-1]

    def fake_sleep(seconds):
        if len(cycles) >= 3:
            raise _StopLoop()

    monkeypatch.setattr(mod, "run_cycle", flaky_run_cycle)
    monkeypatch.setattr(mod.time, "sleep", fake_sleep)

    with caplog.at_level(logging.WARNING, logger="promriak"):
        with pytest.raises(_StopLoop):
            mod.update_loop(session, inst)

    assert cycles == [False, False, True]
    assert b"riak_a 1\n\n" in inst.cache.get().value
    crash = next(r for r in caplog.records if r.getMessage() == "update_cycle_crash")
    assert crash.instance == "local"
