# -*- coding: utf-8 -*-
########################
# autoplay.py
########################
# Purpose:
# - Headless full-run simulation: a fake clock, a fake audio transport and a seeded bot player.
# - Used by the CLI (--simulate) and by end-to-end tests.
#
# Design notes:
# - No Qt usage.
# - The bot and the engine use separate random sources, so changing bot accuracy does not change
#   the spawn sequence of a seeded run.
# - The bot decides once per note, when the note center reaches the zone center: press the
#   note's lane (probability = accuracy), press a different lane, or let it fall.
#
########################
# Interfaces:
# Public dataclasses:
# - SimulationResult(summary: RunSummary, events: list[JudgementEvent], ticks: int)
#
# Public classes:
# - class SimulatedTransport
#   - __init__(*, duration_ms: Optional[float], ended_at_ms: Optional[float] = None)
#   - set_now_ms(now_ms: float) -> None
#   - has_ended() -> bool
#   - duration_ms() -> Optional[float]
#
# Public functions:
# - simulate_run(mode: ModeConfig, *, seed: int, duration_ms: float, tick_ms: float = 16.0,
#                accuracy: float = 0.9, strict_invariants: bool = False) -> SimulationResult
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from typing import List, Optional, Set

import gameplay_models
import mode_config
import run_controller


logger = logging.getLogger(__name__)

MAX_SIMULATED_TICKS = 2_000_000


@dataclass(frozen=True)
class SimulationResult:
    summary: gameplay_models.RunSummary
    events: List[gameplay_models.JudgementEvent]
    ticks: int


class SimulatedTransport:
    def __init__(self, *, duration_ms: Optional[float], ended_at_ms: Optional[float] = None) -> None:
        self._duration_ms = duration_ms
        self._ended_at_ms = ended_at_ms
        self._now_ms = 0.0

    def set_now_ms(self, now_ms: float) -> None:
        self._now_ms = float(now_ms)

    def has_ended(self) -> bool:
        if self._ended_at_ms is None:
            return False
        return self._now_ms >= float(self._ended_at_ms)

    def duration_ms(self) -> Optional[float]:
        return self._duration_ms


class _BotPlayer:
    def __init__(self, *, mode: mode_config.ModeConfig, geometry: mode_config.PlayfieldGeometry, rng: random.Random, accuracy: float) -> None:
        self._mode = mode
        self._geometry = geometry
        self._rng = rng
        self._accuracy = min(max(float(accuracy), 0.0), 1.0)
        self._decided: Set[int] = set()

    def presses_for(self, notes: List[gameplay_models.NoteView]) -> List[Optional[int]]:
        presses: List[Optional[int]] = []
        for view in notes:
            if not view.visible or view.note_id in self._decided:
                continue
            center = self._geometry.note_center(view.position)
            if center < float(self._geometry.zone_center):
                continue

            self._decided.add(int(view.note_id))
            roll = self._rng.random()
            if roll < self._accuracy:
                presses.append(None if self._mode.is_single_lane else int(view.lane))
            elif roll < (1.0 + self._accuracy) / 2.0 and not self._mode.is_single_lane:
                other_lanes = [lane for lane in self._mode.active_lanes if lane != int(view.lane)]
                presses.append(int(self._rng.choice(other_lanes)))
        return presses


def simulate_run(
    mode: mode_config.ModeConfig,
    *,
    seed: int,
    duration_ms: float,
    tick_ms: float = 16.0,
    accuracy: float = 0.9,
    strict_invariants: bool = False,
    geometry: mode_config.PlayfieldGeometry = mode_config.DEFAULT_GEOMETRY,
) -> SimulationResult:
    if float(tick_ms) <= 0.0:
        raise ValueError("tick_ms must be positive")
    if float(duration_ms) <= 0.0:
        raise ValueError("duration_ms must be positive")

    controller = run_controller.RunController(geometry=geometry, seed=seed, strict_invariants=strict_invariants)
    transport = SimulatedTransport(duration_ms=float(duration_ms))
    bot = _BotPlayer(mode=mode, geometry=geometry, rng=random.Random(f"bot-{seed}"), accuracy=accuracy)
    events: List[gameplay_models.JudgementEvent] = []

    now_ms = 0.0
    controller.start(mode, now_ms)
    summary: Optional[gameplay_models.RunSummary] = None
    ticks = 0

    while summary is None:
        ticks += 1
        if ticks > MAX_SIMULATED_TICKS:
            summary = controller.stop()
            break

        now_ms += float(tick_ms)
        transport.set_now_ms(now_ms)
        summary = controller.tick(now_ms, transport)
        if summary is not None:
            break

        for lane in bot.presses_for(controller.note_views()):
            controller.on_press(lane, now_ms)

        events.extend(controller.recent_judgements())
        controller.clear_recent_judgements()

    events.extend(controller.recent_judgements())
    controller.clear_recent_judgements()
    assert summary is not None

    logger.info("Simulated %s: %d ticks, score %d", mode.key, ticks, summary.final_score)
    return SimulationResult(summary=summary, events=events, ticks=ticks)


def _run_unit_tests() -> None:
    mode = mode_config.get_mode("confucius")
    perfect = simulate_run(mode, seed=3, duration_ms=15000.0, accuracy=1.0, strict_invariants=True)
    assert perfect.summary.ended_by == "duration"
    assert perfect.summary.hits > 0
    assert perfect.summary.misses == 0
    assert perfect.summary.hit_percentage == 100

    again = simulate_run(mode, seed=3, duration_ms=15000.0, accuracy=1.0, strict_invariants=True)
    assert again.summary == perfect.summary

    idle = simulate_run(mode, seed=3, duration_ms=15000.0, accuracy=0.0, strict_invariants=True)
    assert idle.summary.hits == 0
    assert idle.summary.final_score == 0


if __name__ == "__main__":
    _run_unit_tests()
    print("autoplay.py: ok")
