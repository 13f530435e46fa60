# -*- coding: utf-8 -*-
########################
# run_clock.py
########################
# Purpose:
# - Single source of truth for run timing: elapsed time, optional duration and run progress.
#
# Design notes:
# - No Qt usage. Keep this module pure and deterministic.
# - The host supplies a monotonic "now" in milliseconds. The clock never reads a system clock.
# - Duration is optional. Unknown (None or <= 0) duration means progress stays 0 and the run
#   never ends by time.
# - A tick whose "now" does not advance past the previous one is rejected (returns False).
#
########################
# Interfaces:
# Public dataclasses:
# - RunClockSnapshot(now_ms: float, elapsed_ms: float, duration_ms: Optional[float], progress: float)
#
# Public classes:
# - class RunClock
#   - start(now_ms: float) -> None
#   - advance(now_ms: float) -> bool
#   - set_duration_ms(duration_ms: Optional[float]) -> None
#   - elapsed_ms() -> float
#   - duration_ms() -> Optional[float]
#   - progress() -> float
#   - duration_reached() -> bool
#   - snapshot() -> RunClockSnapshot
#
# Public functions:
# - transport_duration_ms(player_duration_ms: float, *, track_loaded: bool, fallback_duration_ms: Optional[float]) -> Optional[float]
#
# Inputs:
# - now_ms from the host timer, duration_ms from the audio transport.
#
# Outputs:
# - progress used by motion speed, hit rewards and penalties.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RunClockSnapshot:
    now_ms: float
    elapsed_ms: float
    duration_ms: Optional[float]
    progress: float


def transport_duration_ms(
    player_duration_ms: float,
    *,
    track_loaded: bool,
    fallback_duration_ms: Optional[float],
) -> Optional[float]:
    """Duration an audio transport should report.

    A loaded track reports its own length, or None while the length is still unknown. The fallback
    only applies when no track is playing.
    """
    if track_loaded:
        if float(player_duration_ms) > 0.0:
            return float(player_duration_ms)
        return None
    return fallback_duration_ms


class RunClock:
    def __init__(self) -> None:
        self._start_ms = 0.0
        self._now_ms = 0.0
        self._duration_ms: Optional[float] = None
        self._started = False

    def start(self, now_ms: float) -> None:
        self._start_ms = float(now_ms)
        self._now_ms = float(now_ms)
        self._duration_ms = None
        self._started = True

    def is_started(self) -> bool:
        return bool(self._started)

    def advance(self, now_ms: float) -> bool:
        value = float(now_ms)
        if not self._started or value <= self._now_ms:
            return False
        self._now_ms = value
        return True

    def now_ms(self) -> float:
        return float(self._now_ms)

    def start_ms(self) -> float:
        return float(self._start_ms)

    def set_duration_ms(self, duration_ms: Optional[float]) -> None:
        if duration_ms is None or float(duration_ms) <= 0.0:
            self._duration_ms = None
            return
        self._duration_ms = float(duration_ms)

    def duration_ms(self) -> Optional[float]:
        return self._duration_ms

    def elapsed_ms(self) -> float:
        return max(0.0, float(self._now_ms) - float(self._start_ms))

    def elapsed_at(self, now_ms: float) -> float:
        return max(0.0, float(now_ms) - float(self._start_ms))

    def progress(self) -> float:
        return self.progress_at(self._now_ms)

    def progress_at(self, now_ms: float) -> float:
        if self._duration_ms is None:
            return 0.0
        return min(self.elapsed_at(now_ms) / float(self._duration_ms), 1.0)

    def duration_reached(self) -> bool:
        if self._duration_ms is None:
            return False
        return self.elapsed_ms() >= float(self._duration_ms)

    def snapshot(self) -> RunClockSnapshot:
        return RunClockSnapshot(
            now_ms=self.now_ms(),
            elapsed_ms=self.elapsed_ms(),
            duration_ms=self.duration_ms(),
            progress=self.progress(),
        )


def _run_unit_tests() -> None:
    assert transport_duration_ms(0.0, track_loaded=True, fallback_duration_ms=30000.0) is None
    assert transport_duration_ms(185000.0, track_loaded=True, fallback_duration_ms=30000.0) == 185000.0
    assert transport_duration_ms(0.0, track_loaded=False, fallback_duration_ms=30000.0) == 30000.0

    clock = RunClock()
    assert not clock.advance(10.0)

    clock.start(1000.0)
    assert clock.progress() == 0.0
    assert clock.advance(3500.0)
    assert not clock.advance(3500.0)
    assert not clock.advance(3000.0)
    assert clock.elapsed_ms() == 2500.0
    assert clock.progress() == 0.0
    assert not clock.duration_reached()

    clock.set_duration_ms(10000.0)
    assert abs(clock.progress() - 0.25) < 1e-9
    assert clock.advance(11000.0)
    assert clock.progress() == 1.0
    assert clock.duration_reached()

    clock.set_duration_ms(0.0)
    assert clock.duration_ms() is None
    assert not clock.duration_reached()


if __name__ == "__main__":
    _run_unit_tests()
    print("run_clock.py: ok")
