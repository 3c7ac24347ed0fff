# -*- coding: utf-8 -*-
########################
# note_scheduler.py
########################
# Purpose:
# - Turn an opaque content sequence (song notes, backing cues) into a time-ordered release schedule.
# - Tiles a short sequence to fill a target session duration.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - Schedule order is deterministic: sort by (time_ms, lane) for notes and time_ms for cues.
# - An empty sequence is valid input and produces an empty schedule. Tiling never divides by or
#   takes max() of an empty list.
# - Release uses a monotonic cursor: each event is released exactly once until reset().
#
########################
# Interfaces:
# Public functions:
# - loop_length_for(events: Sequence[T], loop_gap_ms: float) -> float
# - tile_sequence(events: Sequence[T], *, target_duration_ms: float, loop_gap_ms=0.0, loop_length_ms=None) -> list[T]
#   An explicit loop_length_ms keeps several sequences on one shared loop point.
#
# Public classes:
# - class NoteScheduler(Generic[T])
#   - __init__(events: Sequence[T])
#   - reset() -> None
#   - due_events(until_time_ms: float) -> list[T]
#   - peek_next() -> Optional[T]
#   - remaining_count() -> int
#   - total_count() -> int
#   - is_exhausted() -> bool
#
# Inputs:
# - Any frozen dataclass exposing time_ms (gameplay_models.NoteEvent, gameplay_models.BackingCue).
#
# Outputs:
# - Events due for spawning or cueing, consumed by melody.MelodyGame.
#
########################

from __future__ import annotations

import dataclasses
import logging
from typing import Generic, List, Optional, Sequence, TypeVar

import gameplay_models

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _sort_key(event: object) -> tuple:
    return (float(getattr(event, "time_ms")), int(getattr(event, "lane", 0)))


def loop_length_for(events: Sequence[T], loop_gap_ms: float) -> float:
    """Loop period of a sequence: its last event time plus the gap. Zero for an empty sequence."""
    if not events:
        return 0.0
    return max(float(getattr(event, "time_ms")) for event in events) + float(loop_gap_ms)


def tile_sequence(
    events: Sequence[T],
    *,
    target_duration_ms: float,
    loop_gap_ms: float = 0.0,
    loop_length_ms: Optional[float] = None,
) -> List[T]:
    if not events:
        logger.debug("tile_sequence: empty content sequence, nothing to tile")
        return []

    target = float(target_duration_ms)
    if loop_length_ms is None:
        loop_length_ms = loop_length_for(events, loop_gap_ms)
    loop_length_ms = float(loop_length_ms)
    if loop_length_ms <= 0.0:
        logger.warning("tile_sequence: non-positive loop length %.1f ms, using a single pass", loop_length_ms)
        return sorted([event for event in events if float(getattr(event, "time_ms")) <= target], key=_sort_key)

    tiled: List[T] = []
    offset = 0.0
    while offset < target:
        for event in events:
            shifted_time = float(getattr(event, "time_ms")) + offset
            if shifted_time <= target:
                tiled.append(dataclasses.replace(event, time_ms=shifted_time))  # type: ignore[type-var]
        offset += loop_length_ms

    tiled.sort(key=_sort_key)
    return tiled


class NoteScheduler(Generic[T]):
    def __init__(self, events: Sequence[T]) -> None:
        self._events: List[T] = sorted(list(events), key=_sort_key)
        self._cursor = 0

    def reset(self) -> None:
        self._cursor = 0

    def total_count(self) -> int:
        return len(self._events)

    def remaining_count(self) -> int:
        return len(self._events) - self._cursor

    def is_exhausted(self) -> bool:
        return self._cursor >= len(self._events)

    def peek_next(self) -> Optional[T]:
        if self.is_exhausted():
            return None
        return self._events[self._cursor]

    def due_events(self, until_time_ms: float) -> List[T]:
        limit = float(until_time_ms)
        released: List[T] = []
        while self._cursor < len(self._events):
            event = self._events[self._cursor]
            if float(getattr(event, "time_ms")) > limit:
                break
            released.append(event)
            self._cursor += 1
        return released


def _run_unit_tests() -> None:
    notes = [
        gameplay_models.NoteEvent(time_ms=1000.0, lane=1),
        gameplay_models.NoteEvent(time_ms=1000.0, lane=0),
        gameplay_models.NoteEvent(time_ms=500.0, lane=2),
    ]
    tiled = tile_sequence(notes, target_duration_ms=6800.0, loop_gap_ms=2000.0)
    # Loop length 3000 ms: offsets 0, 3000, 6000.
    assert [(n.time_ms, n.lane) for n in tiled[:3]] == [(500.0, 2), (1000.0, 0), (1000.0, 1)]
    assert len(tiled) == 7
    assert tile_sequence([], target_duration_ms=7000.0, loop_gap_ms=2000.0) == []

    scheduler = NoteScheduler(tiled)
    assert [n.lane for n in scheduler.due_events(1000.0)] == [2, 0, 1]
    assert scheduler.due_events(1000.0) == []
    assert scheduler.remaining_count() == 4


if __name__ == "__main__":
    _run_unit_tests()
    print("note_scheduler.py: ok")
