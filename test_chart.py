# test_chart.py
from __future__ import annotations

from typing import List

from chart_models import Song, SongBackingCue, SongCatalog, SongNote
from gameplay_models import NoteType

TEST_SONG_ID = "test"


def build_test_song(*, difficulty_multiplier: float = 1.0) -> Song:
    step_interval_ms = 500.0
    lead_in_ms = 1000.0
    total_notes = 24

    # Deterministic lane pattern that sweeps all six lanes and returns.
    lane_pattern = [2, 2, 2, 3, 4, 5, 4, 3, 4, 3, 2, 3, 1, 0, 1, 2]

    notes: List[SongNote] = []
    current_time_ms = lead_in_ms

    for note_index in range(total_notes):
        lane = lane_pattern[note_index % len(lane_pattern)]
        if note_index in (6, 15, 23):
            notes.append(SongNote(t=current_time_ms, l=lane, type=NoteType.HOLD, len=400.0))
            current_time_ms += step_interval_ms * 2.0
            continue
        notes.append(SongNote(t=current_time_ms, l=lane, type=NoteType.TAP))
        current_time_ms += step_interval_ms

    backing = [
        SongBackingCue(t=0.0, chord=[0, 3]),
        SongBackingCue(t=4000.0, chord=[0, 2, 4]),
        SongBackingCue(t=8000.0, chord=[1, 3]),
        SongBackingCue(t=12000.0, chord=[0, 3, 5]),
    ]

    duration_seconds = max(10.0, (notes[-1].t + notes[-1].len + 3000.0) / 1000.0)

    return Song(
        id=TEST_SONG_ID,
        title="Test Melody",
        subtitle="Built-in practice song",
        description="Short deterministic pattern for local testing.",
        duration=duration_seconds,
        difficulty="Novice",
        difficulty_multiplier=float(difficulty_multiplier),
        notes=notes,
        backing=backing,
    )


def build_test_catalog() -> SongCatalog:
    return SongCatalog(songs=[build_test_song()])
