"""
Device-local login lockout.

After three consecutive credential failures the device refuses to submit
logins for an escalating period (30s, 1min, 2min, 5min, 15min).  When a
lockout runs out, the attempt counter restarts but the escalation level is
kept; only a successful login resets the level.

This is a UX safeguard and nothing more: deleting the state file undoes it.
Brute-force protection has to come from a server-side rate limiter.
"""

import json
import math
import os
import time
from pathlib import Path
from typing import Callable, Iterator, Optional

from pydantic import BaseModel, Field, ValidationError

# Escalating lockout durations in seconds
LOCKOUT_DURATIONS = (30, 60, 120, 300, 900)
MAX_ATTEMPTS_BEFORE_LOCKOUT = 3


class LockoutState(BaseModel):
    attempts: int = 0
    locked_until: Optional[float] = Field(default=None, alias="lockedUntil")  # epoch seconds
    lockout_level: int = Field(default=0, alias="lockoutLevel")

    model_config = {"populate_by_name": True}

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_json(cls, data) -> "LockoutState":
        """Raises pydantic.ValidationError when *data* is not a state object."""
        return cls.model_validate(data)


class LockoutStore:
    def load(self) -> LockoutState:
        raise NotImplementedError

    def save(self, state: LockoutState) -> None:
        raise NotImplementedError


class MemoryLockoutStore(LockoutStore):
    def __init__(self):
        self._state = LockoutState()

    def load(self) -> LockoutState:
        return self._state.model_copy()

    def save(self, state: LockoutState) -> None:
        self._state = state.model_copy()


class FileLockoutStore(LockoutStore):
    """JSON file on the device.  A missing or corrupt file reads as a fresh state."""

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> LockoutState:
        try:
            return LockoutState.from_json(json.loads(self.path.read_text(encoding="utf-8")))
        except FileNotFoundError:
            return LockoutState()
        except (ValueError, ValidationError):
            return LockoutState()

    def save(self, state: LockoutState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(state.to_json()), encoding="utf-8")
        os.replace(tmp, self.path)


def format_lockout_time(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds}s"
    mins, secs = divmod(seconds, 60)
    return f"{mins}min {secs}s" if secs else f"{mins}min"


class LockoutGuard:
    def __init__(self, store: Optional[LockoutStore] = None, clock: Callable[[], float] = time.time):
        self.store = store or MemoryLockoutStore()
        self.clock = clock
        self.state = self.store.load()

    def _save(self) -> None:
        self.store.save(self.state)

    def remaining_seconds(self) -> int:
        if self.state.locked_until is None:
            return 0
        return max(0, math.ceil(self.state.locked_until - self.clock()))

    def tick(self) -> int:
        """
        Recompute the countdown.  Once it reaches zero the device is unlocked
        with a fresh attempt counter and the escalation level left as is.
        """
        remaining = self.remaining_seconds()
        if self.state.locked_until is not None and remaining == 0:
            self.state.locked_until = None
            self.state.attempts = 0
            self._save()
        return remaining

    def is_locked(self) -> bool:
        return self.tick() > 0

    def countdown(self, sleep: Callable[[float], None] = time.sleep) -> Iterator[int]:
        """Yield the remaining seconds once per second until the lockout ends."""
        while True:
            remaining = self.tick()
            yield remaining
            if remaining == 0:
                return
            sleep(1)

    def register_failure(self) -> Optional[int]:
        """
        Count a credential failure.  Returns the lockout duration in seconds
        when this failure triggers a lockout, otherwise None.
        """
        if self.is_locked():
            return None

        attempts = self.state.attempts + 1
        if attempts < MAX_ATTEMPTS_BEFORE_LOCKOUT:
            self.state.attempts = attempts
            self._save()
            return None

        level = min(self.state.lockout_level, len(LOCKOUT_DURATIONS) - 1)
        duration = LOCKOUT_DURATIONS[level]
        self.state = LockoutState(
            attempts=0,
            locked_until=self.clock() + duration,
            lockout_level=min(level + 1, len(LOCKOUT_DURATIONS) - 1),
        )
        self._save()
        return duration

    def register_success(self) -> None:
        self.state = LockoutState()
        self._save()

    def attempts_left(self) -> int:
        return MAX_ATTEMPTS_BEFORE_LOCKOUT - self.state.attempts
