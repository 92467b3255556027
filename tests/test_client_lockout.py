from __future__ import annotations

import json

import pytest

from client.lockout import (
    LOCKOUT_DURATIONS,
    FileLockoutStore,
    LockoutGuard,
    LockoutState,
    format_lockout_time,
)


class FakeTime:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now


def _fail(guard, times):
    result = None
    for _ in range(times):
        result = guard.register_failure()
    return result


def test_three_failures_lock_for_thirty_seconds():
    clock = FakeTime()
    guard = LockoutGuard(clock=clock)

    assert guard.register_failure() is None
    assert guard.attempts_left() == 2
    assert guard.register_failure() is None
    assert guard.register_failure() == 30
    assert guard.is_locked()
    assert guard.remaining_seconds() == 30


def test_escalation_keeps_level_across_natural_expiry():
    clock = FakeTime()
    guard = LockoutGuard(clock=clock)

    assert _fail(guard, 3) == 30
    clock.now += 30
    assert guard.tick() == 0
    assert guard.state.attempts == 0
    assert guard.state.lockout_level == 1

    assert _fail(guard, 3) == 60
    clock.now += 60
    assert _fail(guard, 3) == 120


def test_success_resets_everything():
    clock = FakeTime()
    guard = LockoutGuard(clock=clock)
    _fail(guard, 3)
    clock.now += 30
    guard.register_success()

    assert guard.state == LockoutState()
    assert _fail(guard, 3) == 30


def test_escalation_caps_at_fifteen_minutes():
    clock = FakeTime()
    guard = LockoutGuard(clock=clock)
    durations = []
    for _ in range(len(LOCKOUT_DURATIONS) + 2):
        durations.append(_fail(guard, 3))
        clock.now += durations[-1]
    assert durations == [30, 60, 120, 300, 900, 900, 900]


def test_failures_while_locked_do_not_count():
    clock = FakeTime()
    guard = LockoutGuard(clock=clock)
    _fail(guard, 3)
    assert guard.register_failure() is None
    clock.now += 30
    guard.tick()
    assert guard.attempts_left() == 3


def test_countdown_yields_until_unlocked():
    clock = FakeTime()
    guard = LockoutGuard(clock=clock)
    _fail(guard, 3)

    def sleep(seconds):
        clock.now += seconds

    ticks = list(guard.countdown(sleep=sleep))
    assert ticks[0] == 30
    assert ticks[-1] == 0
    assert len(ticks) == 31
    assert not guard.is_locked()


def test_file_store_survives_a_restart(tmp_path):
    clock = FakeTime()
    path = tmp_path / "lockout.json"
    _fail(LockoutGuard(FileLockoutStore(path), clock=clock), 3)

    restarted = LockoutGuard(FileLockoutStore(path), clock=clock)
    assert restarted.is_locked()
    assert restarted.state.lockout_level == 1


@pytest.mark.parametrize(
    "content",
    ["", "{not json", "[1, 2]", '{"attempts": "x"}', '{"lockedUntil": "x"}', '{"lockoutLevel": [1]}'],
)
def test_corrupt_state_file_reads_as_fresh(tmp_path, content):
    path = tmp_path / "lockout.json"
    path.write_text(content, encoding="utf-8")
    assert FileLockoutStore(path).load() == LockoutState()


def test_state_with_bad_lock_time_never_breaks_the_guard(tmp_path):
    path = tmp_path / "lockout.json"
    path.write_text('{"attempts": 2, "lockedUntil": "x", "lockoutLevel": 1}', encoding="utf-8")
    guard = LockoutGuard(FileLockoutStore(path), clock=FakeTime())
    assert guard.tick() == 0
    assert guard.attempts_left() == 3


def test_state_file_uses_camel_case_keys(tmp_path):
    clock = FakeTime()
    path = tmp_path / "lockout.json"
    _fail(LockoutGuard(FileLockoutStore(path), clock=clock), 3)
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "attempts": 0,
        "lockedUntil": clock.now + 30,
        "lockoutLevel": 1,
    }


@pytest.mark.parametrize(
    "seconds,text",
    [(30, "30s"), (59, "59s"), (60, "1min"), (90, "1min 30s"), (900, "15min")],
)
def test_format_lockout_time(seconds, text):
    assert format_lockout_time(seconds) == text
