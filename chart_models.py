# -*- coding: utf-8 -*-
########################
# chart_models.py
########################
# Purpose:
# - Validated content models for the rhythm game: songs, notes and backing cues.
# - Loads a song catalog from one UTF-8 JSON file.
#
# Design notes:
# - pydantic validates catalog data at load time. Gameplay code only sees gameplay_models values.
# - Conversions to gameplay_models.NoteEvent and gameplay_models.BackingCue are explicit and lossless.
# - Song JSON keeps the compact field names used by hand-written charts: {t, l, type, len}.
# - No Qt usage. Pure data definitions and file reading.
#
########################
# Interfaces:
# Public models (pydantic):
# - SongNote(t: float, l: int, type: NoteType, len: float)
# - SongBackingCue(t: float, chord: list[int])
# - Song(id, title, subtitle, description, duration, difficulty, difficulty_multiplier, notes, backing)
# - SongCatalog(songs: list[Song])
#
# Public functions:
# - load_catalog(catalog_path: pathlib.Path) -> SongCatalog
# - catalog_from_dict(payload: dict, *, source: str) -> SongCatalog
#
# Inputs:
# - Song catalog JSON, for example:
#   {"songs": [{"id": "molihua", "title": "Mo Li Hua", "duration": 90,
#               "notes": [{"t": 1000, "l": 2, "type": "tap"}], "backing": [{"t": 0, "chord": [0, 3]}]}]}
#
# Outputs:
# - gameplay_models.NoteEvent and gameplay_models.BackingCue lists for note_scheduler.tile_sequence.
#
########################

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from gameplay_models import BackingCue, NoteEvent, NoteType

DIFFICULTY_ORDER: Dict[str, int] = {"Novice": 1, "Disciple": 2, "Master": 3, "Grandmaster": 4}


class SongNote(BaseModel):
    t: float = Field(ge=0.0, description="Hit time in ms from song start.")
    l: int = Field(ge=0, description="Lane index.")  # noqa: E741
    type: NoteType = Field(default=NoteType.TAP)
    len: float = Field(default=0.0, ge=0.0, description="Hold length in ms. Only used by hold notes.")

    @model_validator(mode="after")
    def validate_hold_length(self) -> "SongNote":
        if self.type == NoteType.HOLD and self.len <= 0.0:
            raise ValueError("hold notes need len > 0")
        return self

    def to_note_event(self) -> NoteEvent:
        length_ms = float(self.len) if self.type == NoteType.HOLD else 0.0
        return NoteEvent(time_ms=float(self.t), lane=int(self.l), note_type=NoteType(self.type), length_ms=length_ms)


class SongBackingCue(BaseModel):
    t: float = Field(ge=0.0)
    chord: List[int] = Field(default_factory=list)

    @field_validator("chord")
    @classmethod
    def validate_chord(cls, value: List[int]) -> List[int]:
        if any(int(index) < 0 for index in value):
            raise ValueError("chord indices must be >= 0")
        return [int(index) for index in value]

    def to_backing_cue(self) -> BackingCue:
        return BackingCue(time_ms=float(self.t), chord=tuple(self.chord))


class Song(BaseModel):
    id: str
    title: str
    subtitle: str = ""
    description: str = ""
    duration: float = Field(gt=0.0, description="Song duration in seconds.")
    difficulty: str = "Novice"
    difficulty_multiplier: float = Field(default=1.0, gt=0.0)
    notes: List[SongNote] = Field(default_factory=list)
    backing: List[SongBackingCue] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        trimmed = (value or "").strip()
        if not trimmed:
            raise ValueError("song id must not be empty")
        return trimmed

    @property
    def duration_ms(self) -> float:
        return float(self.duration) * 1000.0

    def note_events(self) -> List[NoteEvent]:
        return [note.to_note_event() for note in self.notes]

    def backing_cues(self) -> List[BackingCue]:
        return [cue.to_backing_cue() for cue in self.backing]


class SongCatalog(BaseModel):
    songs: List[Song] = Field(default_factory=list)

    @field_validator("songs")
    @classmethod
    def validate_unique_ids(cls, value: List[Song]) -> List[Song]:
        seen = set()
        for song in value:
            if song.id in seen:
                raise ValueError(f"duplicate song id: {song.id}")
            seen.add(song.id)
        return value

    def find(self, song_id: str) -> Optional[Song]:
        cleaned = str(song_id or "").strip()
        for song in self.songs:
            if song.id == cleaned:
                return song
        return None

    def song_ids(self) -> List[str]:
        return [song.id for song in self.songs]

    def sorted_by_difficulty(self) -> List[Song]:
        return sorted(self.songs, key=lambda song: DIFFICULTY_ORDER.get(song.difficulty, 99))


def catalog_from_dict(payload: Dict[str, Any], *, source: str = "<memory>") -> SongCatalog:
    try:
        return SongCatalog.model_validate(payload)
    except ValidationError as exception:
        raise ValueError(f"Song catalog validation failed for {source}:\n{exception}") from exception


def load_catalog(catalog_path: Path) -> SongCatalog:
    resolved_path = Path(catalog_path)
    try:
        raw_text = resolved_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exception:
        raise OSError(f"Failed to read song catalog: {resolved_path}. Error: {exception}") from exception

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exception:
        raise ValueError(f"Song catalog is not valid JSON: {resolved_path}. Error: {exception}") from exception

    if not isinstance(parsed, dict):
        raise ValueError(f"Song catalog root must be a JSON object: {resolved_path}")

    return catalog_from_dict(parsed, source=str(resolved_path))
