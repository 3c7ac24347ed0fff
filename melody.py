# -*- coding: utf-8 -*-
########################
# melody.py
########################
# Purpose:
# - Graceful Melody rhythm minigame: notes fall down six lanes and are judged at a hit line.
# - Tap notes are consumed on hit. Hold notes are held until their tail crosses the hit line.
#
# Design notes:
# - No Qt usage.
# - Song time is the session's active elapsed time, so pauses do not advance the song.
# - On every fresh start the song is tiled to the target duration. An empty song yields an
#   empty schedule and the session ends as soon as the song duration is reached.
# - Notes spawn when their hit time is within the travel window, positioned so they reach the
#   hit line exactly at their hit time.
# - A hit picks the nearest matching note in its lane. Release of a hold note before its tail is
#   within the good window is a broken hold. A broken hold consumes the note.
# - A later release only ends the key press. The note keeps scoring sustain until its tail crosses.
# - Notes and backing cues are tiled on one loop length taken from the full note list.
# - A note whose tail leaves the field unjudged is an implicit miss.
#
########################
# Interfaces:
# Public classes:
# - class MelodyGame(minigame.Minigame)
#   - __init__(settings: config.MelodyConfig, *, song: chart_models.Song, rng=None, max_delta_ms=100.0)
#   - song_time_ms() -> float
#   - drain_cues() -> list[gameplay_models.BackingCue]
#   - high_score_key() -> str
#
# Public functions:
# - resolve_song(settings: config.MelodyConfig, song_id: Optional[str]) -> chart_models.Song
#
# Inputs:
# - KEY_DOWN / KEY_UP on the lane keys (s d f j k l by default)
# - space / escape: toggle pause, r: restart, q: quit
#
# Outputs:
# - Backing cues for an audio collaborator, snapshot extras for the renderer.
#
########################

from __future__ import annotations

import logging
from pathlib import Path
import random
from typing import Any, Dict, List, Optional

import chart_models
import paths
import test_chart
from config import MelodyConfig
from entity_set import particle_expired
from gameplay_models import BackingCue, Entity, EntityKind, InputEvent, InputKind, NoteEvent, NotePayload, NoteType, ParticlePayload, Tier
from judge import InputClassifier, JudgementWindows, MatchMode
from minigame import Minigame
from note_scheduler import NoteScheduler, loop_length_for, tile_sequence
from session import EndReason, Phase

logger = logging.getLogger(__name__)

PAUSE_KEYS = ("space", "escape")
RESTART_KEY = "r"
QUIT_KEY = "q"

SPARK_SPEED_PX_PER_MS = 0.3
SPARK_GRAVITY_PX_PER_MS2 = 0.00072


def resolve_song(settings: MelodyConfig, song_id: Optional[str] = None) -> chart_models.Song:
    """Pick a song from the configured catalog, falling back to the built-in test song."""
    catalog_path: Optional[Path] = None
    if settings.song_catalog_path:
        catalog_path = Path(settings.song_catalog_path)
    elif paths.default_song_catalog_path().exists():
        catalog_path = paths.default_song_catalog_path()

    if catalog_path is None:
        catalog = test_chart.build_test_catalog()
    else:
        catalog = chart_models.load_catalog(catalog_path)

    if song_id:
        song = catalog.find(song_id)
        if song is None:
            raise ValueError(f"Unknown song id {song_id!r}. Available: {', '.join(catalog.song_ids()) or '(none)'}")
        return song

    ordered = catalog.sorted_by_difficulty()
    if not ordered:
        logger.warning("Song catalog %s is empty, using the built-in test song", catalog_path)
        return test_chart.build_test_song()
    return ordered[0]


class MelodyGame(Minigame):
    game_id = "melody"

    def __init__(
        self,
        settings: MelodyConfig,
        *,
        song: chart_models.Song,
        rng: Optional[random.Random] = None,
        max_delta_ms: float = 100.0,
    ) -> None:
        super().__init__(
            session_id=f"melody:{song.id}",
            rng=rng,
            max_delta_ms=max_delta_ms,
            countdown_labels=settings.countdown_labels,
            countdown_step_ms=float(settings.countdown_step_ms),
        )
        self._settings = settings
        self._song = song
        self._lane_keys: List[str] = list(settings.lane_keys)
        self._lane_count = len(self._lane_keys)
        lane_width = float(settings.field_width) / float(self._lane_count)
        self._lane_centers = [lane_width * index + lane_width / 2.0 for index in range(self._lane_count)]

        self._speed_px_per_frame = float(settings.base_speed_px_per_frame) * float(song.difficulty_multiplier)
        self._speed_px_per_ms = self._speed_px_per_frame / float(settings.frame_ms)
        self._travel_time_ms = float(settings.travel_px) / self._speed_px_per_ms

        self._base_scores: Dict[Tier, float] = {
            Tier.PERFECT: float(settings.perfect_score),
            Tier.GOOD: float(settings.good_score),
        }
        self._classifier = InputClassifier(
            JudgementWindows.simple(
                perfect=float(settings.perfect_px),
                good=float(settings.good_px),
                miss_cutoff=float(settings.miss_cutoff_px),
                search_range=float(settings.search_range_px),
            ),
            deviation_of=lambda entity: abs(entity.y - float(settings.hit_line_y)),
            signed_delta_of=lambda entity: entity.y - float(settings.hit_line_y),
            corresponds=self._lane_matches,
            selectable=self._is_selectable,
            match_mode=MatchMode.NEAREST_MATCHING,
            stray_policy=settings.stray_input_policy,
        )

        self._note_scheduler: NoteScheduler[NoteEvent] = NoteScheduler([])
        self._cue_scheduler: NoteScheduler[BackingCue] = NoteScheduler([])
        self._pending_cues: List[BackingCue] = []
        self._skipped_lane_count = 0

    @property
    def song(self) -> chart_models.Song:
        return self._song

    def high_score_key(self) -> str:
        return self._session.session_id

    def song_time_ms(self) -> float:
        return self._session.active_elapsed_ms()

    def lane_for_key(self, key: Optional[str]) -> int:
        if key is None:
            return -1
        try:
            return self._lane_keys.index(str(key).lower())
        except ValueError:
            return -1

    # ---- lifecycle hooks ----

    def _on_reset(self) -> None:
        settings = self._settings
        notes = [note for note in self._song.note_events() if 0 <= note.lane < self._lane_count]
        self._skipped_lane_count = len(self._song.notes) - len(notes)
        if self._skipped_lane_count:
            logger.debug("Skipping %d notes with lanes outside 0..%d", self._skipped_lane_count, self._lane_count - 1)

        # Cues repeat on the note loop so chords stay aligned with the melody on every pass.
        loop_length_ms = loop_length_for(self._song.note_events(), float(settings.loop_gap_ms))
        target_duration_ms = float(settings.target_duration_ms)
        tiled_notes = tile_sequence(notes, target_duration_ms=target_duration_ms, loop_length_ms=loop_length_ms)
        tiled_cues = tile_sequence(self._song.backing_cues(), target_duration_ms=target_duration_ms, loop_length_ms=loop_length_ms)
        self._note_scheduler = NoteScheduler(tiled_notes)
        self._cue_scheduler = NoteScheduler(tiled_cues)
        self._pending_cues = []

    def _on_enter_active(self) -> None:
        self._note_scheduler.reset()
        self._cue_scheduler.reset()

    # ---- per tick ----

    def _update(self, scaled_delta_ms: float, unscaled_delta_ms: float) -> None:
        song_time_ms = self.song_time_ms()

        if song_time_ms < self._song.duration_ms:
            self._spawn_due_notes(song_time_ms)
            self._pending_cues.extend(self._cue_scheduler.due_events(song_time_ms))
        elif not self._entities.live(EntityKind.NOTE):
            self._session.end(EndReason.DEADLINE)
            return

        self._sustain_holds(scaled_delta_ms)
        self._entities.update(scaled_delta_ms)

        for judgement in self._classifier.collect_expired(
            self._entities.live(EntityKind.NOTE),
            self._note_left_field,
            now_ms=song_time_ms,
        ):
            self._session.apply_failure(judgement.tier)
            self._emit_judgement(judgement)

        self._entities.prune(lambda entity: not entity.alive or particle_expired(entity))

    def _spawn_due_notes(self, song_time_ms: float) -> None:
        hit_line_y = float(self._settings.hit_line_y)
        for note in self._note_scheduler.due_events(song_time_ms + self._travel_time_ms):
            time_until_hit_ms = float(note.time_ms) - song_time_ms
            spawn_y = hit_line_y - time_until_hit_ms * self._speed_px_per_ms
            hold_length_px = float(note.length_ms) * self._speed_px_per_ms if note.note_type is NoteType.HOLD else 0.0
            self._entities.spawn(
                Entity(
                    entity_id=0,
                    kind=EntityKind.NOTE,
                    payload=NotePayload(
                        lane=int(note.lane),
                        note_type=note.note_type,
                        hold_length_px=hold_length_px,
                        hit_time_ms=float(note.time_ms),
                    ),
                    x=self._lane_centers[int(note.lane)],
                    y=spawn_y,
                    vy=self._speed_px_per_ms,
                    spawn_time_ms=song_time_ms,
                )
            )

    def _sustain_holds(self, delta_ms: float) -> None:
        hit_line_y = float(self._settings.hit_line_y)
        for entity in self._entities.live(EntityKind.NOTE):
            payload = entity.payload
            if not isinstance(payload, NotePayload) or not payload.is_holding:
                continue
            self._session.add_bonus(float(self._settings.hold_points_per_ms) * delta_ms)
            if entity.y - payload.hold_length_px > hit_line_y:
                entity.alive = False
                self._spawn_sparks(entity.x, hit_line_y, "gold")

    def _note_left_field(self, entity: Entity) -> bool:
        payload = entity.payload
        if not isinstance(payload, NotePayload) or payload.is_holding:
            return False
        return entity.y - payload.hold_length_px > float(self._settings.field_height)

    # ---- input ----

    def _lane_matches(self, input_event: InputEvent, entity: Entity) -> bool:
        payload = entity.payload
        return isinstance(payload, NotePayload) and payload.lane == self.lane_for_key(input_event.key)

    @staticmethod
    def _is_selectable(entity: Entity) -> bool:
        return isinstance(entity.payload, NotePayload) and not entity.payload.is_holding

    def _handle_input(self, input_event: InputEvent) -> None:
        if input_event.kind is InputKind.KEY_DOWN and not input_event.is_repeat:
            if self._handle_session_key(input_event.key):
                return

        if self._session.phase() is not Phase.ACTIVE:
            return
        if self.lane_for_key(input_event.key) < 0:
            return

        if input_event.kind is InputKind.KEY_DOWN and not input_event.is_repeat:
            self._press_lane(input_event)
        elif input_event.kind is InputKind.KEY_UP:
            self._release_lane(input_event)

    def _handle_session_key(self, key: Optional[str]) -> bool:
        phase = self._session.phase()
        if key in PAUSE_KEYS:
            if phase in (Phase.ACTIVE, Phase.PAUSED):
                self._session.toggle_pause()
                return True
            return False
        if key == RESTART_KEY and phase in (Phase.ACTIVE, Phase.PAUSED, Phase.ENDED):
            return self._session.restart()
        if key == QUIT_KEY and phase in (Phase.ACTIVE, Phase.PAUSED, Phase.ENDED):
            return self._session.quit()
        return False

    def _press_lane(self, input_event: InputEvent) -> None:
        song_time_ms = self.song_time_ms()
        judgement = self._classifier.classify(input_event, self._entities.live(EntityKind.NOTE), now_ms=song_time_ms)
        if judgement is None or judgement.entity is None:
            return

        note = judgement.entity
        payload = note.payload
        if not judgement.tier.is_success:
            note.alive = False
            self._session.apply_failure(judgement.tier)
            self._emit_judgement(judgement)
            return

        self._session.apply_success(
            judgement.tier,
            self._base_scores.get(judgement.tier, float(self._settings.good_score)),
            float(self._settings.combo_bonus_rate),
        )
        self._spawn_sparks(note.x, float(self._settings.hit_line_y), "gold" if judgement.tier is Tier.PERFECT else "jade")
        if isinstance(payload, NotePayload) and payload.note_type is NoteType.HOLD:
            payload.is_holding = True
        else:
            note.alive = False
        self._emit_judgement(judgement)

    def _release_lane(self, input_event: InputEvent) -> None:
        hit_line_y = float(self._settings.hit_line_y)
        held = [entity for entity in self._entities.live(EntityKind.NOTE) if not self._is_selectable(entity)]
        result = self._classifier.classify_release(
            input_event,
            held,
            remaining_extent_of=lambda entity: hit_line_y - (entity.y - entity.payload.hold_length_px),  # type: ignore[union-attr]
            tolerance=float(self._settings.good_px),
            now_ms=self.song_time_ms(),
        )
        if result is None or result.judgement is None:
            # Released near the tail: the note keeps sustaining until the tail crosses the line.
            return

        payload = result.entity.payload
        if isinstance(payload, NotePayload):
            payload.is_holding = False
        result.entity.alive = False
        self._session.apply_failure(result.judgement.tier)
        self._emit_judgement(result.judgement)

    def _spawn_sparks(self, x: float, y: float, style: str) -> None:
        for _ in range(int(self._settings.hit_particles)):
            self._entities.spawn(
                Entity(
                    entity_id=0,
                    kind=EntityKind.PARTICLE,
                    payload=ParticlePayload(life=1.0, gravity_per_ms2=SPARK_GRAVITY_PX_PER_MS2, style=style),
                    x=x,
                    y=y,
                    vx=(self._rng.random() - 0.5) * 2.0 * SPARK_SPEED_PX_PER_MS,
                    vy=(self._rng.random() - 0.5) * 2.0 * SPARK_SPEED_PX_PER_MS,
                )
            )

    # ---- audio collaborator ----

    def drain_cues(self) -> List[BackingCue]:
        cues = list(self._pending_cues)
        self._pending_cues.clear()
        return cues

    # ---- snapshot ----

    def _extras(self) -> Dict[str, Any]:
        song_time_ms = self.song_time_ms()
        duration_ms = self._song.duration_ms
        return {
            "song_id": self._song.id,
            "song_title": self._song.title,
            "song_time_ms": song_time_ms,
            "song_progress": min(1.0, song_time_ms / duration_ms) if duration_ms > 0.0 else 1.0,
            "lane_keys": list(self._lane_keys),
            "lane_centers": list(self._lane_centers),
            "held_lanes": sorted(lane for lane in (self.lane_for_key(key) for key in self._held_keys) if lane >= 0),
            "hit_line_y": float(self._settings.hit_line_y),
            "notes_remaining": self._note_scheduler.remaining_count(),
        }

    def _summary_extras(self) -> Dict[str, Any]:
        return {
            "song_id": self._song.id,
            "song_title": self._song.title,
            "difficulty": self._song.difficulty,
            "total_notes": self._note_scheduler.total_count(),
        }
