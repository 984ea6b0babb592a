import threading

from conftest import FakeClock
from services.rate_limiter import SlidingWindowRateLimiter


def make_limiter(clock, **kwargs):
    return SlidingWindowRateLimiter(clock=clock, **kwargs)


def test_admits_ten_per_window_and_rejects_the_eleventh(clock):
    limiter = make_limiter(clock)

    for _ in range(10):
        assert limiter.check("1.2.3.4")
        clock.advance(1)
    assert not limiter.check("1.2.3.4")


def test_window_is_sliding(clock):
    limiter = make_limiter(clock)
    first = clock.now

    for _ in range(10):
        assert limiter.check("client")
        clock.advance(5)
    assert not limiter.check("client")

    # exactly one window after the first request, that request has expired
    clock.now = first + 60
    assert limiter.check("client")
    assert not limiter.check("client")


def test_rejected_requests_are_not_recorded(clock):
    limiter = make_limiter(clock, max_requests=2)
    assert limiter.check("c")
    assert limiter.check("c")
    for _ in range(5):
        assert not limiter.check("c")

    clock.advance(60)
    assert limiter.check("c")
    assert limiter.check("c")


def test_clients_are_independent(clock):
    limiter = make_limiter(clock, max_requests=1)
    assert limiter.check("a")
    assert not limiter.check("a")
    assert limiter.check("b")


def test_sweep_drops_idle_clients(clock):
    limiter = make_limiter(clock)
    limiter.check("a")
    clock.advance(30)
    limiter.check("b")
    clock.advance(45)

    assert limiter.sweep() == 1
    assert limiter.tracked_clients == 1


def test_sweep_runs_opportunistically_after_interval(clock):
    limiter = make_limiter(clock, sweep_interval_seconds=300)
    for client in ("a", "b", "c"):
        limiter.check(client)
    assert limiter.tracked_clients == 3

    clock.advance(299)
    limiter.check("d")
    assert limiter.tracked_clients == 4

    clock.advance(1)
    limiter.check("d")
    assert limiter.tracked_clients == 1


def test_client_cap_fails_open_for_unseen_clients(clock):
    limiter = make_limiter(clock, max_clients=2, max_requests=1)
    assert limiter.check("a")
    assert limiter.check("b")

    for _ in range(3):
        assert limiter.check("c")
    assert limiter.tracked_clients == 2
    # tracked clients are still limited
    assert not limiter.check("a")


def test_client_cap_can_fail_closed(clock):
    limiter = make_limiter(clock, max_clients=1, fail_open=False)
    assert limiter.check("a")
    assert not limiter.check("b")


def test_concurrent_checks_never_over_admit():
    clock = FakeClock()
    limiter = make_limiter(clock, max_requests=10)
    admitted = []
    lock = threading.Lock()

    def worker():
        for _ in range(10):
            ok = limiter.check("shared")
            with lock:
                admitted.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert admitted.count(True) == 10
    assert len(admitted) == 80
