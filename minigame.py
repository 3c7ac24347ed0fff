# -*- coding: utf-8 -*-
########################
# minigame.py
########################
# Purpose:
# - Loop boundary shared by the five minigames.
# - One tick: clock -> session timers -> continuous tracking -> game update -> end checks.
# - One input: held key and pointer bookkeeping -> session keys -> game judgement.
#
# Design notes:
# - No Qt usage. game_clock.GameClock and input_router.InputRouter feed this class from Qt.
# - Every game owns its own clock, registry, session, entity set and RNG. No module singletons.
# - Per-tick faults are caught here and logged with logger.exception. The loop continues next frame.
# - PAUSED: the clock still ticks and its delta is discarded.
# - Entity motion uses scaled delta. Timers, spawners and time limits use unscaled delta.
#
########################
# Interfaces:
# Public dataclasses:
# - GameSnapshot(game_id, session, clock, entities, extras, recent_judgements)
#
# Public classes:
# - class Minigame
#   - start() / restart() / pause() / resume() / toggle_pause() / quit() -> bool
#   - tick(timestamp_ms: float) -> None
#   - handle_input(input_event: InputEvent) -> None
#   - snapshot() -> GameSnapshot
#   - summary() -> SessionSummary
#   - drain_judgements() -> list[JudgementEvent]
#   - add_end_listener(callback(SessionSummary)) -> None
#
# Public functions:
# - create_game(game_id, app_config=None, rng=None, **options) -> Minigame
#
# Subclass hooks:
# - _on_reset(), _on_round_start(), _on_enter_active()
# - _track(unscaled_delta_ms)            COUNTDOWN and ACTIVE
# - _update(scaled_delta_ms, unscaled_delta_ms)   ACTIVE only
# - _handle_input(input_event)            any phase; judgement only when ACTIVE
# - _extras() -> dict
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

from entity_set import EntitySet
from gameplay_models import Entity, InputEvent, InputKind, JudgementEvent, SessionSummary
from session import BoundedResource, Phase, SessionState, SessionStateMachine
from timer_registry import TimerRegistry
from timing_model import ClockSnapshot, FrameClock

logger = logging.getLogger(__name__)

GAME_IDS: Tuple[str, ...] = ("archery", "fishing", "melody", "horse_taming", "pitch_pot")

MAX_RECENT_JUDGEMENTS = 32


@dataclass(frozen=True)
class GameSnapshot:
    game_id: str
    session: SessionState
    clock: ClockSnapshot
    entities: List[Entity]
    extras: Dict[str, Any]
    recent_judgements: List[JudgementEvent]


class Minigame:
    game_id = "minigame"

    def __init__(
        self,
        *,
        session_id: str,
        rng: Optional[random.Random] = None,
        max_delta_ms: float = 100.0,
        countdown_labels: Sequence[str] = (),
        countdown_step_ms: float = 0.0,
        resources: Sequence[BoundedResource] = (),
        exhaustion_resource: Optional[str] = None,
        completion_resource: Optional[str] = None,
        required_rounds: Optional[int] = None,
        time_limit_ms: Optional[float] = None,
    ) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._clock = FrameClock(max_delta_ms=max_delta_ms)
        self._registry = TimerRegistry()
        self._entities = EntitySet()
        self._session = SessionStateMachine(
            session_id=session_id,
            registry=self._registry,
            countdown_labels=countdown_labels,
            countdown_step_ms=countdown_step_ms,
            resources=resources,
            exhaustion_resource=exhaustion_resource,
            completion_resource=completion_resource,
            required_rounds=required_rounds,
            time_limit_ms=time_limit_ms,
            on_reset=self._handle_reset,
            on_round_start=self._on_round_start,
            on_enter_active=self._on_enter_active,
        )
        self._session.add_listener(self._on_phase_changed)

        self._held_keys: Set[str] = set()
        self._pointer_x: Optional[float] = None
        self._pointer_y: Optional[float] = None
        self._pointer_down = False
        self._judgements: List[JudgementEvent] = []
        self._end_listeners: List[Callable[[SessionSummary], None]] = []
        self._last_summary: Optional[SessionSummary] = None

    # ---- accessors ----

    @property
    def session(self) -> SessionStateMachine:
        return self._session

    @property
    def clock(self) -> FrameClock:
        return self._clock

    @property
    def registry(self) -> TimerRegistry:
        return self._registry

    @property
    def entities(self) -> EntitySet:
        return self._entities

    @property
    def rng(self) -> random.Random:
        return self._rng

    def phase(self) -> Phase:
        return self._session.phase()

    def last_summary(self) -> Optional[SessionSummary]:
        return self._last_summary

    def held_keys(self) -> Set[str]:
        return set(self._held_keys)

    def pointer_position(self) -> Optional[Tuple[float, float]]:
        if self._pointer_x is None or self._pointer_y is None:
            return None
        return (float(self._pointer_x), float(self._pointer_y))

    def add_end_listener(self, callback: Callable[[SessionSummary], None]) -> None:
        self._end_listeners.append(callback)

    # ---- session commands ----

    def start(self) -> bool:
        return self._session.start()

    def restart(self) -> bool:
        return self._session.restart()

    def pause(self) -> bool:
        return self._session.pause()

    def resume(self) -> bool:
        return self._session.resume()

    def toggle_pause(self) -> bool:
        return self._session.toggle_pause()

    def quit(self) -> bool:
        return self._session.quit()

    # ---- loop boundary ----

    def tick(self, timestamp_ms: float) -> None:
        try:
            scaled_delta_ms = self._clock.tick(timestamp_ms)
            unscaled_delta_ms = self._clock.last_unscaled_delta_ms()

            if self._session.phase() not in (Phase.COUNTDOWN, Phase.ACTIVE):
                return

            self._session.tick(unscaled_delta_ms)
            if self._session.phase() in (Phase.COUNTDOWN, Phase.ACTIVE):
                self._track(unscaled_delta_ms)
            if self._session.phase() is Phase.ACTIVE:
                self._update(scaled_delta_ms, unscaled_delta_ms)
        except Exception:
            logger.exception("%s: tick failed at %.1f ms", self.game_id, float(timestamp_ms))

    def handle_input(self, input_event: InputEvent) -> None:
        try:
            self._record_continuous_state(input_event)
            self._handle_input(input_event)
        except Exception:
            logger.exception("%s: input handling failed for %s", self.game_id, input_event)

    def _record_continuous_state(self, input_event: InputEvent) -> None:
        kind = input_event.kind
        if kind is InputKind.KEY_DOWN and input_event.key:
            self._held_keys.add(str(input_event.key))
        elif kind is InputKind.KEY_UP and input_event.key:
            self._held_keys.discard(str(input_event.key))

        if input_event.x is not None and input_event.y is not None:
            self._pointer_x = float(input_event.x)
            self._pointer_y = float(input_event.y)
        if kind is InputKind.POINTER_DOWN:
            self._pointer_down = True
        elif kind is InputKind.POINTER_UP:
            self._pointer_down = False

    def clear_held_input(self) -> None:
        """Forget held keys and buttons, e.g. when the window loses focus."""
        self._held_keys.clear()
        self._pointer_down = False

    # ---- judgement feed ----

    def _emit_judgement(self, judgement: Optional[JudgementEvent]) -> None:
        if judgement is None:
            return
        self._judgements.append(judgement)
        if len(self._judgements) > MAX_RECENT_JUDGEMENTS:
            del self._judgements[: len(self._judgements) - MAX_RECENT_JUDGEMENTS]

    def drain_judgements(self) -> List[JudgementEvent]:
        drained = list(self._judgements)
        self._judgements.clear()
        return drained

    # ---- snapshot and summary ----

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            game_id=self.game_id,
            session=self._session.state(),
            clock=self._clock.snapshot(),
            entities=self._entities.live(),
            extras=self._extras(),
            recent_judgements=list(self._judgements),
        )

    def summary(self) -> SessionSummary:
        return self._session.summary(self._summary_extras())

    def _handle_reset(self) -> None:
        self._entities.clear()
        self._judgements.clear()
        self._last_summary = None
        self._on_reset()

    def _on_phase_changed(self, previous: Phase, current: Phase) -> None:
        if current is not Phase.ENDED:
            return
        self._on_end()
        summary = self.summary()
        self._last_summary = summary
        for callback in list(self._end_listeners):
            callback(summary)

    # ---- subclass hooks ----

    def _on_reset(self) -> None:
        pass

    def _on_round_start(self) -> None:
        pass

    def _on_enter_active(self) -> None:
        pass

    def _on_end(self) -> None:
        pass

    def _track(self, unscaled_delta_ms: float) -> None:
        pass

    def _update(self, scaled_delta_ms: float, unscaled_delta_ms: float) -> None:
        raise NotImplementedError

    def _handle_input(self, input_event: InputEvent) -> None:
        raise NotImplementedError

    def _extras(self) -> Dict[str, Any]:
        return {}

    def _summary_extras(self) -> Dict[str, Any]:
        return {}


def create_game(
    game_id: str,
    app_config: Optional[Any] = None,
    rng: Optional[random.Random] = None,
    **options: Any,
) -> Minigame:
    """Build a game by id. Game modules are imported on demand."""
    if app_config is None:
        import config as config_module

        app_config = config_module.AppConfig()

    normalized = str(game_id or "").strip().lower().replace("-", "_")
    max_delta_ms = float(app_config.clock.max_delta_ms)

    if normalized == "archery":
        import archery

        return archery.ArcheryGame(app_config.archery, rng=rng, max_delta_ms=max_delta_ms)
    if normalized == "fishing":
        import fishing

        return fishing.FishingGame(app_config.fishing, rng=rng, max_delta_ms=max_delta_ms)
    if normalized == "melody":
        import melody

        song = options.get("song")
        if song is None:
            song = melody.resolve_song(app_config.melody, options.get("song_id"))
        return melody.MelodyGame(app_config.melody, song=song, rng=rng, max_delta_ms=max_delta_ms)
    if normalized == "horse_taming":
        import horse_taming

        return horse_taming.HorseTamingGame(app_config.horse_taming, rng=rng, max_delta_ms=max_delta_ms)
    if normalized == "pitch_pot":
        import pitch_pot

        rounds = options.get("rounds")
        return pitch_pot.PitchPotGame(
            app_config.pitch_pot,
            rng=rng,
            rounds=rounds,
            varieties=options.get("varieties"),
            max_delta_ms=max_delta_ms,
        )

    raise ValueError(f"Unknown game id: {game_id!r}. Expected one of: {', '.join(GAME_IDS)}")
