import pytest
from unittest.mock import MagicMock
from membership_portal.api.token_cache import TokenCache
from membership_portal.core.errors import NetworkError, TokenError


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_token_is_cached_until_expiry():
    clock = FakeClock()
    provider = MagicMock(side_effect=["tok-1", "tok-2"])
    cache = TokenCache(provider, expiry_seconds=1800, clock=clock)

    assert cache.get() == "tok-1"
    clock.now = 1799
    assert cache.get() == "tok-1"
    clock.now = 1800
    assert cache.get() == "tok-2"
    assert provider.call_count == 2


def test_invalidate_forces_refetch():
    provider = MagicMock(side_effect=["tok-1", "tok-2"])
    cache = TokenCache(provider, clock=FakeClock())

    cache.get()
    cache.invalidate()

    assert cache.token is None
    assert cache.get() == "tok-2"


def test_single_failed_fetch_is_retried():
    provider = MagicMock(side_effect=[NetworkError("blip"), "tok-1"])
    cache = TokenCache(provider, clock=FakeClock())

    assert cache.get() == "tok-1"


def test_two_failed_fetches_raise_token_error():
    provider = MagicMock(side_effect=TokenError("Failed to get CSRF token"))
    cache = TokenCache(provider, clock=FakeClock())

    with pytest.raises(TokenError):
        cache.get()
    assert provider.call_count == 2
    assert cache.token is None


def test_empty_token_counts_as_failure():
    provider = MagicMock(return_value="")
    cache = TokenCache(provider, clock=FakeClock())

    with pytest.raises(TokenError):
        cache.get()
