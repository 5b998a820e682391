import threading

import pytest

from portfolio_api.config import Settings
from portfolio_api.utils.rate_limit import InMemoryRateLimiter
from portfolio_api.utils.tasks import TaskDispatcher


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_rate_limiter_fixed_window():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock)
    assert limiter.allow("k", 2, 60) == (True, 0)
    assert limiter.allow("k", 2, 60) == (True, 0)
    clock.now += 15
    allowed, retry_after = limiter.allow("k", 2, 60)
    assert not allowed
    assert retry_after == 45
    assert limiter.allow("other", 2, 60)[0]

    clock.now += 45
    assert limiter.allow("k", 2, 60) == (True, 0)


def test_rate_limiter_reset():
    limiter = InMemoryRateLimiter(clock=FakeClock())
    limiter.allow("k", 1, 60)
    assert not limiter.allow("k", 1, 60)[0]
    limiter.reset()
    assert limiter.allow("k", 1, 60)[0]


def test_dispatcher_records_outcomes():
    dispatcher = TaskDispatcher()
    seen = []

    def boom():
        raise RuntimeError("nope")

    dispatcher.submit("ok", seen.append, 1)
    dispatcher.submit("bad", boom)
    assert dispatcher.join(5)
    assert seen == [1]
    outcomes = {entry["name"]: entry for entry in dispatcher.history()}
    assert outcomes["ok"]["status"] == "succeeded"
    assert outcomes["bad"]["status"] == "failed"
    assert outcomes["bad"]["error"] == "nope"


def test_dispatcher_does_not_block_submitter():
    dispatcher = TaskDispatcher()
    release = threading.Event()
    task_id = dispatcher.submit("slow", release.wait, 5)
    assert task_id
    assert not dispatcher.join(0.01)
    release.set()
    assert dispatcher.join(5)


def test_dispatcher_drops_tasks_after_shutdown():
    dispatcher = TaskDispatcher()
    dispatcher.shutdown()
    assert dispatcher.submit("late", lambda: None) is None


def test_settings_overrides_and_validation(tmp_path):
    s = Settings(UPLOAD_DIR=str(tmp_path), CONTACT_RATE_LIMIT_MAX=5)
    assert s.UPLOAD_DIR == tmp_path
    assert s.CONTACT_RATE_LIMIT_MAX == 5
    with pytest.raises(TypeError):
        Settings(NOT_A_SETTING=1)
    with pytest.raises(RuntimeError):
        Settings(ENV="prod", JWT_SECRET="change_me_for_prod")


def test_notify_email_falls_back_to_email_user(monkeypatch):
    monkeypatch.setenv("EMAIL_USER", "me@example.com")
    monkeypatch.delenv("ADMIN_NOTIFY_EMAIL", raising=False)
    assert Settings().ADMIN_NOTIFY_EMAIL == "me@example.com"


def test_rate_limiter_drops_expired_windows():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock, sweep_threshold=2)
    for key in ("a", "b", "c"):
        limiter.allow(key, 1, 60)
    clock.now += 30
    limiter.allow("d", 1, 60)
    assert set(limiter._windows) == {"a", "b", "c", "d"}

    clock.now += 31
    assert limiter.allow("e", 1, 60) == (True, 0)
    assert set(limiter._windows) == {"d", "e"}
    assert not limiter.allow("d", 1, 60)[0]
