from unittest.mock import MagicMock

from chronoverify.satellite.token_cache import AccessToken, TokenCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _cache(expires_in=600, skew=30):
    clock = FakeClock()
    fetch = MagicMock(side_effect=[AccessToken(access_token=f"t{i}", expires_in=expires_in) for i in range(1, 6)])
    return TokenCache(fetch, skew_seconds=skew, clock=clock), fetch, clock


def test_token_reused_until_expiry():
    cache, fetch, clock = _cache()
    assert cache.get() == "t1"
    clock.now += 500
    assert cache.get() == "t1"
    assert fetch.call_count == 1


def test_token_refreshed_inside_skew_window():
    cache, fetch, clock = _cache(expires_in=600, skew=30)
    cache.get()
    clock.now += 571
    assert cache.get() == "t2"
    assert fetch.call_count == 2


def test_zero_lifetime_tokens_are_never_reused():
    cache, fetch, _ = _cache(expires_in=0)
    assert cache.get() == "t1"
    assert cache.get() == "t2"


def test_force_refresh_and_invalidate():
    cache, fetch, _ = _cache()
    cache.get()
    assert cache.get(force_refresh=True) == "t2"
    cache.invalidate()
    assert cache.get() == "t3"
