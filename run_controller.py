# -*- coding: utf-8 -*-
########################
# run_controller.py
########################
# Purpose:
# - Own one run of the game: elapsed time, spawning, motion, press judgement, scoring and
#   completion.
# - The explicit run context that every tick and every press goes through.
#
# Design notes:
# - No Qt usage. The host calls tick() from its timer and on_press() from its input handler, both on
#   the same thread. Presses are judged immediately against the current registry snapshot.
# - No process-wide state. The mode record, geometry and random source are injected at start.
#   A seeded controller replays the same run for the same sequence of ticks and presses.
# - Completion: the audio transport reports it has ended, or elapsed time reaches the known
#   duration. Unknown duration never ends the run by time.
# - Every outcome becomes exactly one JudgementEvent. Events are buffered for the renderer
#   (recent_judgements / clear_recent_judgements) and pushed to the optional render sink.
#
########################
# Interfaces:
# Public enums:
# - RunStatus: IDLE | RUNNING | FINISHED
#
# Public protocols:
# - AudioTransport: has_ended() -> bool, duration_ms() -> Optional[float]
# - RenderSink: render_notes(notes: list[NoteView]) -> None, on_judgement(event: JudgementEvent) -> None
#
# Public classes:
# - class RunController
#   - __init__(*, geometry: PlayfieldGeometry = DEFAULT_GEOMETRY, seed: Optional[int] = None,
#              strict_invariants: bool = False, render_sink: Optional[RenderSink] = None)
#   - start(mode: ModeConfig, now_ms: float) -> None
#   - restart(now_ms: float) -> None
#   - tick(now_ms: float, transport: Optional[AudioTransport] = None) -> Optional[RunSummary]
#   - on_press(lane: Optional[int], now_ms: float) -> Optional[JudgementEvent]
#   - stop(now_ms: Optional[float] = None) -> Optional[RunSummary]
#   - status() / is_running() / mode() / state() / progress() / note_views() / summary()
#   - recent_judgements() -> list[JudgementEvent]
#   - clear_recent_judgements() -> None
#
# Inputs:
# - Host clock ticks, lane presses, audio transport state.
#
# Outputs:
# - NoteView snapshots and JudgementEvents for the render sink, RunSummary at completion.
#
########################

from __future__ import annotations

import enum
import logging
import random
from typing import List, Optional, Protocol, runtime_checkable

import gameplay_models
import judge
import mode_config
import note_motion
import note_registry
import run_clock
import scoring
import spawn_scheduler


logger = logging.getLogger(__name__)


class RunStatus(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"


@runtime_checkable
class AudioTransport(Protocol):
    def has_ended(self) -> bool:
        ...

    def duration_ms(self) -> Optional[float]:
        ...


@runtime_checkable
class RenderSink(Protocol):
    def render_notes(self, notes: List[gameplay_models.NoteView]) -> None:
        ...

    def on_judgement(self, event: gameplay_models.JudgementEvent) -> None:
        ...


class RunController:
    def __init__(
        self,
        *,
        geometry: mode_config.PlayfieldGeometry = mode_config.DEFAULT_GEOMETRY,
        seed: Optional[int] = None,
        strict_invariants: bool = False,
        render_sink: Optional[RenderSink] = None,
    ) -> None:
        self._geometry = geometry
        self._seed = seed
        self._strict = bool(strict_invariants)
        self._render_sink = render_sink

        self._status = RunStatus.IDLE
        self._mode: Optional[mode_config.ModeConfig] = None
        self._clock = run_clock.RunClock()
        self._registry = note_registry.NoteRegistry(active_lanes=[], strict=self._strict)
        self._scheduler: Optional[spawn_scheduler.SpawnScheduler] = None
        self._motion: Optional[note_motion.NoteMotionUpdater] = None
        self._judge: Optional[judge.JudgeEngine] = None
        self._state = scoring.RunState()
        self._recent_judgements: List[gameplay_models.JudgementEvent] = []
        self._summary: Optional[gameplay_models.RunSummary] = None

    def set_render_sink(self, render_sink: Optional[RenderSink]) -> None:
        self._render_sink = render_sink

    def status(self) -> RunStatus:
        return self._status

    def is_running(self) -> bool:
        return self._status == RunStatus.RUNNING

    def mode(self) -> Optional[mode_config.ModeConfig]:
        return self._mode

    def geometry(self) -> mode_config.PlayfieldGeometry:
        return self._geometry

    def state(self) -> scoring.RunState:
        return self._state

    def clock(self) -> run_clock.RunClock:
        return self._clock

    def progress(self) -> float:
        return self._clock.progress()

    def registry(self) -> note_registry.NoteRegistry:
        return self._registry

    def note_views(self) -> List[gameplay_models.NoteView]:
        return self._registry.views()

    def summary(self) -> Optional[gameplay_models.RunSummary]:
        return self._summary

    def recent_judgements(self) -> List[gameplay_models.JudgementEvent]:
        return list(self._recent_judgements)

    def clear_recent_judgements(self) -> None:
        self._recent_judgements.clear()

    def start(self, mode: mode_config.ModeConfig, now_ms: float) -> None:
        rng = random.Random(self._seed)
        self._mode = mode
        self._registry = note_registry.NoteRegistry(active_lanes=mode.active_lanes, strict=self._strict)
        self._scheduler = spawn_scheduler.SpawnScheduler(mode=mode, geometry=self._geometry, rng=rng)
        self._motion = note_motion.NoteMotionUpdater(mode=mode, geometry=self._geometry, rng=rng)
        self._judge = judge.JudgeEngine(mode=mode, geometry=self._geometry, registry=self._registry)
        self._state = scoring.RunState()
        self._recent_judgements = []
        self._summary = None

        self._clock.start(now_ms)
        self._scheduler.reset(now_ms)
        self._status = RunStatus.RUNNING
        logger.info("Run started: mode=%s seed=%s lanes=%d", mode.key, self._seed, len(mode.active_lanes))

    def restart(self, now_ms: float) -> None:
        if self._mode is None:
            raise RuntimeError("restart() called before any run was started")
        if self.is_running():
            self._finish(ended_by="stopped")
        self.start(self._mode, now_ms)

    def stop(self, now_ms: Optional[float] = None) -> Optional[gameplay_models.RunSummary]:
        if not self.is_running():
            return self._summary
        if now_ms is not None:
            self._clock.advance(now_ms)
        return self._finish(ended_by="stopped")

    def tick(self, now_ms: float, transport: Optional[AudioTransport] = None) -> Optional[gameplay_models.RunSummary]:
        if not self.is_running():
            return None

        previous_ms = self._clock.now_ms()
        if not self._clock.advance(now_ms):
            return None
        dt_ms = float(now_ms) - previous_ms

        if transport is not None:
            duration_ms = transport.duration_ms()
            if duration_ms is not None and self._clock.duration_ms() is None:
                self._clock.set_duration_ms(duration_ms)
                if self._clock.duration_ms() is not None:
                    logger.info("Run duration known: %.0f ms", float(duration_ms))
            if transport.has_ended():
                return self._finish(ended_by="audio")

        if self._clock.duration_reached():
            return self._finish(ended_by="duration")

        assert self._scheduler is not None and self._motion is not None
        self._scheduler.update_for_time(now_ms=now_ms, registry=self._registry)

        progress = self._clock.progress()
        misses = self._motion.update(now_ms=now_ms, dt_ms=dt_ms, progress=progress, registry=self._registry)
        for miss in misses:
            self._apply_outcome(miss, now_ms=now_ms, progress=progress)

        if self._render_sink is not None:
            self._render_sink.render_notes(self._registry.views())
        return None

    def on_press(self, lane: Optional[int], now_ms: float) -> Optional[gameplay_models.JudgementEvent]:
        if not self.is_running() or self._judge is None:
            return None

        outcome = self._judge.resolve_press(lane)
        if outcome is None:
            return None

        progress = self._clock.progress_at(max(float(now_ms), self._clock.now_ms()))
        return self._apply_outcome(outcome, now_ms=now_ms, progress=progress)

    def _apply_outcome(
        self,
        outcome: gameplay_models.JudgementOutcome,
        *,
        now_ms: float,
        progress: float,
    ) -> gameplay_models.JudgementEvent:
        assert self._mode is not None
        change = scoring.score_outcome(
            self._state,
            outcome,
            mode=self._mode,
            progress=progress,
            now_ms=now_ms,
            geometry=self._geometry,
        )
        self._state = change.state

        grade: Optional[str] = None
        timing_ms: Optional[float] = None
        note_id: Optional[int] = None
        if isinstance(outcome, gameplay_models.Hit):
            lane: Optional[int] = int(outcome.note.lane)
            note_id = int(outcome.note.note_id)
            timing_ms = float(outcome.timing_ms)
            if self._judge is not None:
                grade = self._judge.grade_for(outcome)
        elif isinstance(outcome, gameplay_models.Miss):
            lane = int(outcome.note.lane)
            note_id = int(outcome.note.note_id)
        elif isinstance(outcome, gameplay_models.WrongLane):
            lane = int(outcome.pressed_lane)
        else:
            lane = outcome.lane

        event = gameplay_models.JudgementEvent(
            time_ms=float(now_ms),
            kind=gameplay_models.outcome_kind(outcome),
            lane=lane,
            note_id=note_id,
            points_delta=int(change.points_delta),
            grade=grade,
            timing_ms=timing_ms,
            threshold_reached=bool(change.threshold_reached),
            spam_penalized=bool(change.spam_penalized),
        )
        logger.debug(
            "%s lane=%s note=%s delta=%d score=%d combo=%d",
            event.kind.value,
            event.lane,
            event.note_id,
            event.points_delta,
            self._state.score,
            self._state.combo,
        )

        self._recent_judgements.append(event)
        if self._render_sink is not None:
            self._render_sink.on_judgement(event)
        return event

    def _finish(self, *, ended_by: str) -> gameplay_models.RunSummary:
        assert self._mode is not None
        self._registry.clear()
        self._status = RunStatus.FINISHED
        self._summary = gameplay_models.RunSummary(
            mode_key=str(self._mode.key),
            final_score=int(self._state.score),
            max_combo=int(self._state.max_combo),
            hits=int(self._state.hits),
            misses=int(self._state.misses),
            hit_percentage=int(self._state.hit_percentage()),
            elapsed_ms=float(self._clock.elapsed_ms()),
            ended_by=str(ended_by),
        )
        if self._render_sink is not None:
            self._render_sink.render_notes([])
        logger.info(
            "Run finished (%s): score=%d hits=%d misses=%d hit%%=%d max_combo=%d",
            ended_by,
            self._summary.final_score,
            self._summary.hits,
            self._summary.misses,
            self._summary.hit_percentage,
            self._summary.max_combo,
        )
        return self._summary


class _FixedTransport:
    def __init__(self, duration_ms: Optional[float], ended: bool = False) -> None:
        self._duration_ms = duration_ms
        self.ended = ended

    def has_ended(self) -> bool:
        return bool(self.ended)

    def duration_ms(self) -> Optional[float]:
        return self._duration_ms


def _run_unit_tests() -> None:
    controller = RunController(seed=5, strict_invariants=True)
    assert controller.tick(100.0) is None
    assert controller.on_press(0, 100.0) is None

    controller.start(mode_config.get_mode("confucius"), 0.0)
    transport = _FixedTransport(duration_ms=10000.0)
    now_ms = 0.0
    summary = None
    while summary is None and now_ms < 20000.0:
        now_ms += 16.0
        summary = controller.tick(now_ms, transport)
    assert summary is not None
    assert summary.ended_by == "duration"
    assert 10000.0 <= summary.elapsed_ms < 10016.0
    assert summary.misses > 0 and summary.hit_percentage == 0
    assert len(controller.registry()) == 0

    controller.restart(0.0)
    assert controller.is_running() and controller.state().score == 0
    event = controller.on_press(2, 5.0)
    assert event is not None and event.kind is gameplay_models.JudgementKind.EMPTY_PRESS
    assert controller.state().misses == 1

    transport.ended = True
    ended = controller.tick(50.0, transport)
    assert ended is not None and ended.ended_by == "audio"

    unknown = RunController(seed=1)
    unknown.start(mode_config.get_mode("confucius"), 0.0)
    for step in range(1, 100):
        unknown.tick(step * 1000.0, _FixedTransport(duration_ms=None))
    assert unknown.is_running()
    stopped = unknown.stop()
    assert stopped is not None and stopped.ended_by == "stopped"


if __name__ == "__main__":
    _run_unit_tests()
    print("run_controller.py: ok")
