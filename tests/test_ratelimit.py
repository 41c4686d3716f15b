import threading
from datetime import date

from src.relife.ratelimit import InMemoryDailyRateLimiter, NullRateLimiter, build_rate_limiter

def test_quota_per_key_per_day():
    day = [date(2026, 10, 19)]
    limiter = InMemoryDailyRateLimiter(limit=2, today=lambda: day[0])
    assert limiter.allow("1.2.3.4")
    assert limiter.allow("1.2.3.4")
    assert not limiter.allow("1.2.3.4")
    assert limiter.allow("5.6.7.8")

    day[0] = date(2026, 10, 20)
    assert limiter.allow("1.2.3.4")
    assert limiter.used("1.2.3.4") == 1

def test_concurrent_increments_never_exceed_quota():
    limiter = InMemoryDailyRateLimiter(limit=50, today=lambda: date(2026, 10, 19))
    allowed = []
    lock = threading.Lock()

    def worker():
        for _ in range(20):
            ok = limiter.allow("same-caller")
            with lock:
                allowed.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert allowed.count(True) == 50
    assert limiter.used("same-caller") == 50

def test_zero_quota_disables_limiting():
    limiter = build_rate_limiter(0)
    assert isinstance(limiter, NullRateLimiter)
    assert all(limiter.allow("x") for _ in range(100))
