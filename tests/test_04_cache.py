import pytest

from mobileconnect import cache
from mobileconnect.cache import SessionCache
from mobileconnect.exception import CacheDisabled


def test_add_get():
    _cache = SessionCache()
    _cache.add("session", {"foo": "bar"})
    assert _cache.get("session") == {"foo": "bar"}
    assert "session" in _cache
    assert len(_cache) == 1
    assert _cache.get("other") is None


def test_remove_clear():
    _cache = SessionCache()
    _cache.add("a", 1)
    _cache.add("b", 2)
    _cache.remove("a")
    assert _cache.keys() == ["b"]
    _cache.clear()
    assert len(_cache) == 0


def test_disabled():
    _cache = SessionCache(enabled=False)
    with pytest.raises(CacheDisabled):
        _cache.add("session", 1)
    with pytest.raises(CacheDisabled):
        _cache.get("session")
    assert "session" not in _cache


def test_expiry(monkeypatch):
    _cache = SessionCache(max_age=10)
    monkeypatch.setattr(cache, "utc_time_sans_frac", lambda: 1000)
    _cache.add("session", 1)

    monkeypatch.setattr(cache, "utc_time_sans_frac", lambda: 1010)
    assert _cache.get("session") == 1

    monkeypatch.setattr(cache, "utc_time_sans_frac", lambda: 1011)
    assert _cache.get("session") is None
    # expired entries are dropped
    assert len(_cache) == 0


def test_no_max_age_keeps_for_ever(monkeypatch):
    _cache = SessionCache()
    monkeypatch.setattr(cache, "utc_time_sans_frac", lambda: 1000)
    _cache.add("session", 1)
    monkeypatch.setattr(cache, "utc_time_sans_frac", lambda: 10 ** 9)
    assert _cache.get("session") == 1
