# -*- coding: utf-8 -*-
########################
# overlay_renderer.py
########################
# Purpose:
# - Playfield Qt widget: the render sink of a run.
# - Paints lanes, judgment zones, live notes, the HUD and fading judgement feedback.
#
# Design notes:
# - Downstream consumer only. Positions come from RunController snapshots (NoteView); the widget
#   never feeds anything back into judgement.
# - Geometry units are scaled to pixels per paint, so the widget can be resized freely.
# - Hidden notes are not drawn. Notes with cue_shown get a bright outline (early cue).
# - Judgement text floats up and fades over its lifetime, one entry per lane plus one global entry
#   for lane-less events.
#
########################
# Interfaces:
# Public dataclasses:
# - PlayfieldStyle(lane_width_pixels: float, lane_gap_pixels: float, top_margin_pixels: float, ...)
#
# Public classes:
# - class PlayfieldWidget(PyQt6.QtWidgets.QWidget)
#   - set_mode(mode: Optional[ModeConfig]) -> None
#   - set_hud_state(state: RunState) -> None
#   - set_state_text(state_text: str) -> None
#   - render_notes(notes: list[NoteView]) -> None
#   - on_judgement(event: JudgementEvent) -> None
#   - on_input_event(input_event: InputEvent) -> None
#
# Inputs:
# - NoteView lists and JudgementEvents pushed by RunController.
# - InputEvents from InputRouter (lane flashes).
#
# Outputs:
# - Painted playfield visuals on the widget surface.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from PyQt6.QtCore import QRectF, Qt, QTimer
from PyQt6.QtGui import QBrush, QColor, QFont, QPainter, QPen
from PyQt6.QtWidgets import QWidget

import gameplay_models
import mode_config
import scoring


@dataclass(frozen=True)
class PlayfieldStyle:
    lane_width_pixels: float = 90.0
    lane_gap_pixels: float = 8.0
    top_margin_pixels: float = 48.0
    bottom_margin_pixels: float = 24.0
    feedback_lifetime_ms: float = 800.0
    feedback_rise_pixels: float = 50.0
    lane_flash_ms: float = 100.0


@dataclass
class _Feedback:
    time_ms: float
    lane: Optional[int]
    text: str
    color: QColor


_KIND_COLORS = {
    gameplay_models.JudgementKind.HIT: QColor(90, 220, 120),
    gameplay_models.JudgementKind.MISS: QColor(230, 80, 80),
    gameplay_models.JudgementKind.WRONG_LANE: QColor(240, 150, 60),
    gameplay_models.JudgementKind.EMPTY_PRESS: QColor(200, 200, 200),
}


def feedback_text(event: gameplay_models.JudgementEvent) -> str:
    if event.kind is gameplay_models.JudgementKind.HIT:
        label = str(event.grade or "hit").upper()
        return f"{label} +{int(event.points_delta)}"
    if event.kind is gameplay_models.JudgementKind.WRONG_LANE:
        return f"{int(event.points_delta)} (Wrong Key)"
    if event.kind is gameplay_models.JudgementKind.MISS:
        return f"MISS {int(event.points_delta)}"
    if event.spam_penalized:
        return f"FORCED {int(event.points_delta)}"
    if int(event.points_delta) == 0:
        return "EARLY"
    return f"EARLY {int(event.points_delta)}"


class PlayfieldWidget(QWidget):
    def __init__(
        self,
        time_provider_ms: Callable[[], float],
        *,
        geometry: mode_config.PlayfieldGeometry = mode_config.DEFAULT_GEOMETRY,
        style: Optional[PlayfieldStyle] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._time_provider_ms = time_provider_ms
        self._geometry = geometry
        self._style = style or PlayfieldStyle()

        self._lane_count = 4
        self._mode_title = ""
        self._notes: List[gameplay_models.NoteView] = []
        self._feedback: List[_Feedback] = []
        self._lane_flash_ms: List[float] = [-1e9] * 4
        self._hud_state = scoring.RunState()
        self._state_text = ""

        self.setMinimumSize(420, 520)

        self._paint_timer = QTimer(self)
        self._paint_timer.setInterval(16)
        self._paint_timer.timeout.connect(self.update)
        self._paint_timer.start()

    def set_mode(self, mode: Optional[mode_config.ModeConfig]) -> None:
        if mode is None:
            self._lane_count = 4
            self._mode_title = ""
        else:
            self._lane_count = int(mode.lane_count)
            self._mode_title = f"{mode.name}: {mode.full_description}"
        self._lane_flash_ms = [-1e9] * self._lane_count
        self._notes = []
        self._feedback = []

    def set_hud_state(self, state: scoring.RunState) -> None:
        self._hud_state = state

    def set_state_text(self, state_text: str) -> None:
        self._state_text = str(state_text or "")

    def render_notes(self, notes: List[gameplay_models.NoteView]) -> None:
        self._notes = list(notes)

    def on_judgement(self, event: gameplay_models.JudgementEvent) -> None:
        self._feedback.append(
            _Feedback(
                time_ms=float(self._time_provider_ms()),
                lane=event.lane,
                text=feedback_text(event),
                color=_KIND_COLORS.get(event.kind, QColor(240, 240, 240)),
            )
        )

    def on_input_event(self, input_event: gameplay_models.InputEvent) -> None:
        lane = 0 if input_event.lane is None else int(input_event.lane)
        if 0 <= lane < len(self._lane_flash_ms):
            self._lane_flash_ms[lane] = float(self._time_provider_ms())

    def _lane_rect(self, lane: int) -> QRectF:
        style = self._style
        total_width = self._lane_count * style.lane_width_pixels + (self._lane_count - 1) * style.lane_gap_pixels
        left = (float(self.width()) - total_width) / 2.0
        x = left + float(lane) * (style.lane_width_pixels + style.lane_gap_pixels)
        height = float(self.height()) - style.top_margin_pixels - style.bottom_margin_pixels
        return QRectF(x, style.top_margin_pixels, style.lane_width_pixels, height)

    def _pixels_per_unit(self) -> float:
        lane_height = float(self.height()) - self._style.top_margin_pixels - self._style.bottom_margin_pixels
        return max(lane_height, 1.0) / float(self._geometry.miss_boundary)

    def paintEvent(self, event) -> None:  # type: ignore[override]
        now_ms = float(self._time_provider_ms())
        scale = self._pixels_per_unit()

        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.fillRect(self.rect(), QBrush(QColor(14, 12, 18)))

        for lane in range(self._lane_count):
            self._paint_lane(painter, lane, now_ms, scale)

        for view in self._notes:
            self._paint_note(painter, view, scale)

        self._paint_feedback(painter, now_ms)
        self._paint_hud(painter)
        painter.end()

    def _paint_lane(self, painter: QPainter, lane: int, now_ms: float, scale: float) -> None:
        lane_rect = self._lane_rect(lane)
        flash_active = now_ms - self._lane_flash_ms[lane] <= self._style.lane_flash_ms

        painter.save()
        painter.setPen(QPen(QColor(60, 60, 70)))
        painter.setBrush(QBrush(QColor(30, 28, 38)))
        painter.drawRect(lane_rect)

        zone_rect = QRectF(
            lane_rect.left(),
            lane_rect.top() + float(self._geometry.zone_top) * scale,
            lane_rect.width(),
            float(self._geometry.zone_height) * scale,
        )
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(QColor(80, 200, 110, 170) if flash_active else QColor(60, 150, 80, 110)))
        painter.drawRect(zone_rect)

        center_y = lane_rect.top() + self._geometry.zone_center * scale
        painter.setPen(QPen(QColor(120, 240, 140), 2.0))
        painter.drawLine(int(lane_rect.left()), int(center_y), int(lane_rect.right()), int(center_y))
        painter.restore()

    def _paint_note(self, painter: QPainter, view: gameplay_models.NoteView, scale: float) -> None:
        if not view.visible or view.lane < 0 or view.lane >= self._lane_count:
            return

        lane_rect = self._lane_rect(view.lane)
        note_rect = QRectF(
            lane_rect.left() + 6.0,
            lane_rect.top() + float(view.position) * scale,
            lane_rect.width() - 12.0,
            float(self._geometry.note_extent) * scale,
        )

        painter.save()
        if view.cue_shown:
            painter.setPen(QPen(QColor(255, 230, 90), 3.0))
        else:
            painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(QColor(110, 170, 250)))
        painter.drawRoundedRect(note_rect, 6.0, 6.0)
        painter.restore()

    def _paint_feedback(self, painter: QPainter, now_ms: float) -> None:
        lifetime = float(self._style.feedback_lifetime_ms)
        kept: List[_Feedback] = []

        for item in self._feedback:
            age = now_ms - float(item.time_ms)
            if age < 0.0 or age > lifetime:
                continue
            kept.append(item)

            fraction = age / lifetime
            if item.lane is not None and 0 <= int(item.lane) < self._lane_count:
                lane_rect = self._lane_rect(int(item.lane))
                zone_y = lane_rect.top() + float(self._geometry.zone_top) * self._pixels_per_unit()
                text_rect = QRectF(lane_rect.left() - 30.0, zone_y - 40.0, lane_rect.width() + 60.0, 24.0)
            else:
                text_rect = QRectF(0.0, float(self.height()) / 2.0, float(self.width()), 24.0)
            text_rect.translate(0.0, -fraction * float(self._style.feedback_rise_pixels))

            painter.save()
            painter.setOpacity(painter.opacity() * (1.0 - fraction))
            painter.setPen(QPen(item.color))
            painter.setFont(QFont("Arial", 14, weight=QFont.Weight.Bold))
            painter.drawText(text_rect, int(Qt.AlignmentFlag.AlignHCenter), item.text)
            painter.restore()

        self._feedback = kept

    def _paint_hud(self, painter: QPainter) -> None:
        state = self._hud_state
        painter.save()
        painter.setPen(QPen(QColor(240, 240, 240)))
        painter.setFont(QFont("Arial", 12))
        hud_text = f"Score {state.score}  Combo {state.combo}  Max {state.max_combo}"
        painter.drawText(QRectF(10.0, 10.0, float(self.width()) - 20.0, 22.0), int(Qt.AlignmentFlag.AlignLeft), hud_text)
        if self._mode_title:
            painter.drawText(
                QRectF(10.0, 10.0, float(self.width()) - 20.0, 22.0),
                int(Qt.AlignmentFlag.AlignRight),
                self._mode_title,
            )

        text = str(self._state_text or "").strip()
        if text:
            painter.drawText(
                QRectF(0.0, float(self.height()) - 22.0, float(self.width()), 20.0),
                int(Qt.AlignmentFlag.AlignHCenter),
                text,
            )
        painter.restore()
