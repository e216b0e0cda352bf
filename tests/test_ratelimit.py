from chatcache.core.ratelimit import RateLimiter


def test_allows_up_to_limit_within_window(clock):
    limiter = RateLimiter(max_requests=2, window_seconds=60, clock=clock)

    assert limiter.allow("10.0.0.1") is True
    assert limiter.allow("10.0.0.1") is True
    assert limiter.allow("10.0.0.1") is False
    assert limiter.allow("10.0.0.2") is True


def test_window_slides(clock):
    limiter = RateLimiter(max_requests=2, window_seconds=60, clock=clock)
    limiter.allow("a")
    clock.advance(30)
    limiter.allow("a")
    clock.advance(31)

    # The first request has left the window, the second has not.
    assert limiter.allow("a") is True
    assert limiter.allow("a") is False


def test_idle_clients_are_forgotten_after_the_window(clock):
    limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
    for i in range(5000):
        limiter.allow(f"client-{i}")
    assert len(limiter) == 5000

    clock.advance(3600)
    limiter.allow("other")

    assert len(limiter) == 1


def test_active_clients_survive_pruning(clock):
    limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
    limiter.allow("idle")
    clock.advance(50)
    limiter.allow("busy")
    clock.advance(20)
    limiter.allow("busy")

    assert len(limiter) == 1
    assert limiter.allow("busy") is True
