"""
tests.test_site_config
~~~~~~~~~~~~~~~~~~~~~~~
Unit tests for the configuration core, run against in-memory adapters.

Covers:
- ProcessMemoCache
- DatalistStore      (tier precedence, persistence, failure sentinel)
- ConfigContext      (get / set / save / unset)
- RunOnceGuard       (ledger, thresholds, fail-closed)
- DjangoCacheAdapter
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import pytest
from django.core.cache.backends.locmem import LocMemCache
from structlog.testing import capture_logs

from apps.config_core.services.adapters import DjangoCacheAdapter, StoreUnavailableError
from apps.config_core.services.config_context import ConfigContext
from apps.config_core.services.datalist import LOOKUP_FAILED, DatalistStore
from apps.config_core.services.memo_cache import ProcessMemoCache
from common.exceptions import UnsupportedOperationError


# ===========================================================================
# Fakes
# ===========================================================================

class FakeStore:
    """In-memory PersistentStore that records how it was used."""

    def __init__(self, attributes: dict | None = None, unreachable: bool = False,
                 save_result: bool = True) -> None:
        self.attributes = dict(attributes or {})
        self.unreachable = unreachable
        self.save_result = save_result
        self.pending: dict = {}
        self.get_calls: list[str] = []
        self.save_calls = 0

    def get_attribute(self, key):
        self.get_calls.append(key)
        if self.unreachable:
            raise StoreUnavailableError("connection refused")
        return self.attributes.get(key)

    def set_attribute(self, key, value):
        self.pending[key] = value

    def save(self):
        self.save_calls += 1
        if self.save_result:
            self.attributes.update(self.pending)
        self.pending.clear()
        return self.save_result


class FakeCache:
    def __init__(self, values: dict | None = None, available: bool = True) -> None:
        self.values = dict(values or {})
        self.available = available
        self.loads: list[str] = []

    def is_available(self):
        return self.available

    def load(self, key):
        self.loads.append(key)
        return self.values.get(key)


class FakeClock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self):
        return self.now


@dataclass
class Theme:
    colour: str


LONG_NAME = "x" * 256


# ===========================================================================
# Fixtures
# ===========================================================================

@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(100)


@pytest.fixture
def ctx(store, clock) -> ConfigContext:
    return ConfigContext(store=store, clock=clock)


# ===========================================================================
# TestProcessMemoCache
# ===========================================================================

class TestProcessMemoCache:

    def test_put_then_get(self):
        memo = ProcessMemoCache()
        memo.put("language", "en")
        assert memo.get("language") == "en"
        assert memo.has("language")
        assert "language" in memo

    def test_missing_name(self):
        memo = ProcessMemoCache()
        assert memo.get("nope") is None
        assert memo.get("nope", "fallback") == "fallback"
        assert not memo.has("nope")

    def test_none_value_does_not_count_as_set(self):
        memo = ProcessMemoCache({"lastcache": None})
        assert not memo.has("lastcache")
        assert len(memo) == 1


# ===========================================================================
# TestDatalistStore
# ===========================================================================

class TestDatalistStore:

    def _make(self, memo=None, static=None, store=None, cache=None) -> DatalistStore:
        return DatalistStore(
            memo=memo if memo is not None else ProcessMemoCache(),
            static_settings=static,
            store=store,
            cache=cache,
        )

    def test_memo_wins_over_every_other_tier(self):
        memo = ProcessMemoCache({"dataroot": "/memo/"})
        store = FakeStore({"config:dataroot": "/db/"})
        datalist = self._make(memo=memo, static={"dataroot": "/static/"}, store=store)
        assert datalist.resolve("dataroot") == "/memo/"
        assert store.get_calls == []

    def test_static_wins_over_store(self):
        store = FakeStore({"dataroot": "/db/", "config:dataroot": "/db/"})
        datalist = self._make(static={"dataroot": "/static/"}, store=store)
        assert datalist.resolve("dataroot") == "/static/"
        assert store.get_calls == []

    def test_cache_wins_over_store(self):
        store = FakeStore({"config:language": "fr"})
        cache = FakeCache({"language": "de"})
        datalist = self._make(store=store, cache=cache)
        assert datalist.resolve("language") == "de"
        assert cache.loads == ["language"]
        assert store.get_calls == []

    def test_unavailable_cache_is_skipped(self):
        store = FakeStore({"config:language": "fr"})
        cache = FakeCache({"language": "de"}, available=False)
        datalist = self._make(store=store, cache=cache)
        assert datalist.resolve("language") == "fr"
        assert cache.loads == []

    def test_cache_miss_falls_through_to_store(self):
        store = FakeStore({"config:language": "fr"})
        cache = FakeCache()
        datalist = self._make(store=store, cache=cache)
        assert datalist.resolve("language") == "fr"

    def test_store_bare_name_before_namespaced_key(self):
        store = FakeStore({"url": "https://example.org/", "config:url": "ignored"})
        datalist = self._make(store=store)
        assert datalist.resolve("url") == "https://example.org/"
        assert store.get_calls == ["url"]

    def test_store_falls_back_to_namespaced_key(self):
        store = FakeStore({"config:dataroot": "/var/www/data"})
        datalist = self._make(store=store)
        assert datalist.resolve("dataroot") == "/var/www/data"
        assert store.get_calls == ["dataroot", "config:dataroot"]

    def test_unset_name_returns_none(self):
        datalist = self._make(store=FakeStore())
        assert datalist.resolve("never_set") is None

    def test_no_store_returns_none(self):
        assert self._make().resolve("never_set") is None

    def test_name_is_trimmed(self):
        datalist = self._make(static={"language": "en"})
        assert datalist.resolve("  language \n") == "en"

    def test_too_long_name_fails_and_logs(self):
        store = FakeStore()
        datalist = self._make(store=store)
        with capture_logs() as logs:
            assert datalist.resolve(LONG_NAME) is LOOKUP_FAILED
        assert store.get_calls == []
        assert any(
            log["event"] == "config_name_too_long" and log["log_level"] == "error"
            for log in logs
        )

    def test_unreachable_store_returns_lookup_failed(self):
        datalist = self._make(store=FakeStore(unreachable=True))
        with capture_logs() as logs:
            assert datalist.resolve("dataroot") is LOOKUP_FAILED
        assert any(log["event"] == "datalist_store_unreachable" for log in logs)

    def test_lookup_failed_is_falsy_and_distinct_from_none(self):
        assert not LOOKUP_FAILED
        assert LOOKUP_FAILED is not None
        assert repr(LOOKUP_FAILED) == "LOOKUP_FAILED"

    def test_persist_writes_namespaced_key_and_saves(self):
        store = FakeStore()
        datalist = self._make(store=store)
        assert datalist.persist("dataroot", "/var/www/data") is True
        assert store.attributes == {"config:dataroot": "/var/www/data"}
        assert store.save_calls == 1

    def test_persist_reports_failed_save(self):
        store = FakeStore(save_result=False)
        assert self._make(store=store).persist("dataroot", "/d") is False

    def test_persist_too_long_touches_nothing(self):
        store = FakeStore()
        assert self._make(store=store).persist(LONG_NAME, "v") is False
        assert store.pending == {}
        assert store.save_calls == 0

    def test_persist_without_store_fails(self):
        assert self._make().persist("dataroot", "/d") is False

    def test_persist_does_not_update_memo_or_cache(self):
        memo = ProcessMemoCache()
        cache = FakeCache({"language": "de"})
        store = FakeStore()
        datalist = self._make(memo=memo, store=store, cache=cache)
        datalist.persist("language", "fr")
        assert not memo.has("language")
        assert cache.values["language"] == "de"
        assert datalist.resolve("language") == "de"


# ===========================================================================
# TestConfigContext
# ===========================================================================

class TestConfigContext:

    def test_round_trip_same_process(self, ctx, store):
        assert ctx.save_config("dataroot", "/var/www/data") is True
        store.get_calls.clear()
        assert ctx.get_config("dataroot") == "/var/www/data"
        assert store.get_calls == []

    def test_round_trip_fresh_process(self, ctx, store):
        ctx.save_config("dataroot", "/var/www/data")
        fresh = ConfigContext(store=store)
        assert fresh.get_config("dataroot") == "/var/www/data"
        assert "config:dataroot" in store.get_calls

    def test_resolved_value_is_memoized(self, store):
        store.attributes["config:language"] = "fr"
        ctx = ConfigContext(store=store)
        assert ctx.get_config("language") == "fr"
        assert ctx.get_config("language") == "fr"
        assert store.get_calls == ["language", "config:language"]

    def test_memoized_value_is_not_refreshed(self, store):
        store.attributes["config:language"] = "fr"
        ctx = ConfigContext(store=store)
        ctx.get_config("language")
        store.attributes["config:language"] = "de"
        assert ctx.get_config("language") == "fr"

    def test_static_settings_take_precedence_over_store(self, store):
        store.attributes["config:dataroot"] = "/db/"
        ctx = ConfigContext(static_settings={"dataroot": "/static/"}, store=store)
        assert ctx.get_config("dataroot") == "/static/"

    def test_miss_is_not_memoized(self, ctx, store):
        assert ctx.get_config("never_set") is None
        assert ctx.get_config("never_set") is None
        assert store.get_calls.count("never_set") == 2
        assert store.get_calls.count("config:never_set") == 2

    def test_unreachable_store_reads_as_none_and_is_retried(self):
        store = FakeStore(unreachable=True)
        ctx = ConfigContext(store=store)
        assert ctx.get_config("dataroot") is None
        assert ctx.get_config("dataroot") is None
        assert store.get_calls.count("dataroot") == 2

    def test_set_config_is_memo_only(self, ctx, store):
        ctx.set_config(" language ", "en")
        assert ctx.get_config("language") == "en"
        assert store.pending == {}
        assert store.save_calls == 0
        assert store.get_calls == []

    def test_save_too_long_name_fails_without_any_mutation(self, ctx, store):
        with capture_logs() as logs:
            assert ctx.save_config(LONG_NAME, "value") is False
        assert any(
            log["event"] == "config_name_too_long" and log["log_level"] == "error"
            for log in logs
        )
        assert store.attributes == {}
        assert store.save_calls == 0
        assert not ctx.memo.has(LONG_NAME)

    def test_save_exactly_255_chars_is_accepted(self, ctx, store):
        name = "n" * 255
        assert ctx.save_config(name, 1) is True
        assert store.attributes == {f"config:{name}": 1}

    def test_save_trims_name(self, ctx, store):
        assert ctx.save_config("  dataroot  ", "/d") is True
        assert "config:dataroot" in store.attributes

    def test_object_value_memoized_but_not_persisted(self, ctx, store):
        theme = Theme(colour="teal")
        with capture_logs() as logs:
            assert ctx.save_config("x", theme) is False
        assert ctx.get_config("x") is theme
        assert store.save_calls == 0
        assert store.pending == {}
        assert any(log["event"] == "config_value_not_persistable" for log in logs)

    def test_compound_json_values_are_persisted(self, ctx, store):
        assert ctx.save_config("features", {"dark_mode": True, "tags": ["a"]}) is True
        assert store.attributes["config:features"] == {"dark_mode": True, "tags": ["a"]}

    @pytest.mark.parametrize(
        "value",
        [
            {"next_run": datetime(2024, 1, 1)},
            ["a", {"b"}],
            {"theme": Theme(colour="teal")},
            {1: "non-string key"},
            ("a", "b"),
        ],
    )
    def test_nested_opaque_values_memoized_but_not_persisted(self, ctx, store, value):
        assert ctx.save_config("schedule", value) is False
        assert ctx.get_config("schedule") is value
        assert store.save_calls == 0
        assert store.pending == {}

    def test_failed_save_still_memoizes(self):
        store = FakeStore(save_result=False)
        ctx = ConfigContext(store=store)
        assert ctx.save_config("dataroot", "/d") is False
        assert ctx.get_config("dataroot") == "/d"

    def test_unset_config_is_unsupported(self, ctx):
        ctx.set_config("language", "en")
        with pytest.raises(UnsupportedOperationError) as exc_info:
            ctx.unset_config("language")
        assert exc_info.value.code == "not_implemented"
        assert ctx.get_config("language") == "en"


# ===========================================================================
# TestRunOnce
# ===========================================================================

class TestRunOnce:

    def test_runs_once_then_respects_threshold(self, ctx, store, clock):
        calls = []

        @ctx.guard.register("migrate_v2")
        def migrate_v2():
            calls.append(clock.now)

        assert ctx.run_once("migrate_v2", 0) is True
        assert store.attributes["config:migrate_v2"] == 100
        assert calls == [100]

        clock.now = 150
        assert ctx.run_once("migrate_v2", 50) is False
        assert calls == [100]

        assert ctx.run_once("migrate_v2", 200) is True
        assert calls == [100, 150]
        assert store.attributes["config:migrate_v2"] == 150

    def test_threshold_equal_to_last_run_runs_again(self, ctx, store):
        store.attributes["config:migrate_v2"] = 100
        ctx.guard.register("migrate_v2")(lambda: None)
        assert ctx.run_once("migrate_v2", 100) is True

    def test_string_ledger_values_are_accepted(self, ctx, store):
        store.attributes["config:migrate_v2"] = "300"
        ctx.guard.register("migrate_v2")(lambda: None)
        assert ctx.run_once("migrate_v2", 200) is False

    def test_fractional_ledger_values_truncate(self, ctx, store):
        calls = []
        store.attributes["config:migrate_v2"] = "150.9"
        ctx.guard.register("migrate_v2")(lambda: calls.append(1))
        assert ctx.run_once("migrate_v2", 149) is False
        assert ctx.run_once("migrate_v2", 150) is True
        assert calls == [1]

    def test_fails_closed_when_ledger_unreadable(self, clock):
        calls = []
        ctx = ConfigContext(store=FakeStore(unreachable=True), clock=clock)
        ctx.guard.register("migrate_v2")(lambda: calls.append(1))
        with capture_logs() as logs:
            assert ctx.run_once("migrate_v2", 10**12) is False
        assert calls == []
        assert any(log["event"] == "run_once_ledger_unreadable" for log in logs)

    def test_fails_closed_on_corrupt_ledger(self, ctx, store):
        calls = []
        store.attributes["config:migrate_v2"] = "yesterday"
        ctx.guard.register("migrate_v2")(lambda: calls.append(1))
        assert ctx.run_once("migrate_v2", 10**12) is False
        assert calls == []

    def test_unknown_operation_is_not_invoked(self, ctx, store):
        assert ctx.run_once("no_such_operation", 10**12) is False
        assert store.save_calls == 0

    def test_callable_is_recorded_under_qualified_name(self, ctx, store):
        calls = []

        def reindex():
            calls.append(1)

        assert ctx.run_once(reindex) is True
        key = f"config:{reindex.__module__}.{reindex.__qualname__}"
        assert store.attributes[key] == 100
        assert ctx.run_once(reindex) is False
        assert calls == [1]

    def test_dotted_path_is_imported(self, ctx, store):
        assert ctx.run_once("gc.collect") is True
        assert store.attributes["config:gc.collect"] == 100

    def test_non_callable_dotted_path_is_not_invoked(self, ctx):
        assert ctx.run_once("os.sep") is False

    def test_failed_ledger_write_still_reports_execution(self, clock):
        calls = []
        ctx = ConfigContext(store=FakeStore(save_result=False), clock=clock)
        ctx.guard.register("migrate_v2")(lambda: calls.append(1))
        with capture_logs() as logs:
            assert ctx.run_once("migrate_v2") is True
        assert calls == [1]
        events = {log["event"] for log in logs}
        assert "run_once_ledger_write_failed" in events
        assert "run_once_executed" in events

    def test_register_without_name_uses_qualified_name(self, ctx):
        @ctx.guard.register()
        def upgrade_2024():
            pass

        name = f"{upgrade_2024.__module__}.{upgrade_2024.__qualname__}"
        assert ctx.guard.lookup(name) is upgrade_2024


# ===========================================================================
# TestDjangoCacheAdapter
# ===========================================================================

class _FakeCacheHandler:
    def __init__(self, caches: dict) -> None:
        self._caches = caches
        self.settings = {alias: {} for alias in caches}

    def __getitem__(self, alias):
        return self._caches[alias]


class _BrokenCache:
    def get(self, key):
        raise ConnectionError("memcached down")


class TestDjangoCacheAdapter:

    def test_declared_alias_is_available(self):
        backend = LocMemCache("datalist-test", {})
        backend.set("language", "de")
        adapter = DjangoCacheAdapter("datalist", caches=_FakeCacheHandler({"datalist": backend}))
        assert adapter.is_available() is True
        assert adapter.load("language") == "de"
        assert adapter.load("missing") is None

    def test_undeclared_alias_is_unavailable(self):
        adapter = DjangoCacheAdapter("datalist", caches=_FakeCacheHandler({}))
        assert adapter.is_available() is False
        assert adapter.load("language") is None

    def test_backend_error_is_a_miss(self):
        adapter = DjangoCacheAdapter(
            "datalist", caches=_FakeCacheHandler({"datalist": _BrokenCache()})
        )
        with capture_logs() as logs:
            assert adapter.load("language") is None
        assert any(log["event"] == "datalist_cache_load_failed" for log in logs)

    def test_default_handler_without_datalist_alias(self):
        # Test settings declare only the "default" cache.
        assert DjangoCacheAdapter("datalist").is_available() is False
