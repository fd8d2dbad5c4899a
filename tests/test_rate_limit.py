from santa.services.rate_limit import RateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_rate_limiter_blocks_after_max_calls():
    clock = FakeClock()
    limiter = RateLimiter(max_calls=2, period_seconds=10, clock=clock)

    assert limiter.allow("user:join").allowed
    assert limiter.allow("user:join").allowed
    blocked = limiter.allow("user:join")
    assert not blocked.allowed
    assert blocked.retry_after == 10


def test_rate_limiter_keys_are_independent():
    limiter = RateLimiter(max_calls=1, period_seconds=10, clock=FakeClock())

    assert limiter.allow("a:join").allowed
    assert limiter.allow("b:join").allowed
    assert not limiter.allow("a:join").allowed


def test_rate_limiter_window_slides():
    clock = FakeClock()
    limiter = RateLimiter(max_calls=1, period_seconds=10, clock=clock)

    assert limiter.allow("user:ready").allowed
    clock.now += 11
    assert limiter.allow("user:ready").allowed


def test_rate_limiter_forgets_idle_keys():
    clock = FakeClock()
    limiter = RateLimiter(max_calls=1, period_seconds=10, clock=clock)

    for index in range(50):
        limiter.allow(f"client-{index}:/")
    assert len(limiter) == 50

    clock.now += 11
    assert limiter.allow("client-0:/").allowed
    assert len(limiter) == 1
