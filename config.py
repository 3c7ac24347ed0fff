"""
config.py

Typed configuration loading and validation for the Jianghu minigames.

Design goals
- Load at most one UTF-8 JSON config file
- Validate with pydantic (defaults included, so no file is required)
- Support environment variable overrides
- No other I/O beyond reading the config file (no directory creation)

Config file location
- If JIANGHU_CONFIG_PATH is set, that file is used (and must exist).
- Otherwise these paths are searched in order and the first one that exists is used:
  1) ./jianghu_config.json (current working directory)
  2) <user config dir>/Jianghu/Jianghu/jianghu_config.json
  3) <user config dir>/Jianghu/Jianghu/config.json
- If none exists, built-in defaults are used.

Example config file (jianghu_config.json)
{
  "clock": {"max_delta_ms": 100, "frame_interval_ms": 16},
  "logging": {"level": "INFO"},
  "archery": {"duration_seconds": 60, "stray_input_policy": "ignore"},
  "melody": {"song_catalog_path": "songs/songs.json"},
  "horse_taming": {"stray_input_policy": "consume_as_miss"},
  "pitch_pot": {"rounds": 3},
  "high_scores": {"enabled": true}
}
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from platformdirs import user_config_dir
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from judge import StrayInputPolicy

APP_NAME = "Jianghu"
APP_AUTHOR = "Jianghu"

FloatRange = Tuple[float, float]


def _validate_range(value: FloatRange) -> FloatRange:
    low, high = float(value[0]), float(value[1])
    if low > high:
        raise ValueError(f"range low must be <= high, got [{low}, {high}]")
    return (low, high)


def _validate_increasing(values: List[float], label: str) -> None:
    previous = 0.0
    for value in values:
        if float(value) <= previous:
            raise ValueError(f"{label} must be strictly increasing and > 0, got {values}")
        previous = float(value)


class ClockConfig(BaseModel):
    max_delta_ms: float = Field(default=100.0, gt=0.0, description="Per-tick delta clamp ceiling.")
    frame_interval_ms: int = Field(default=16, ge=1, le=1000, description="Qt timer interval for the frame driver.")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    format: str = Field(default="%(asctime)s %(levelname)s %(name)s: %(message)s")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        normalized = (value or "").strip().upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError("level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return normalized


class ArcheryConfig(BaseModel):
    field_width: float = Field(default=1280.0, gt=0.0)
    field_height: float = Field(default=720.0, gt=0.0)
    duration_seconds: float = Field(default=60.0, gt=0.0)
    spawn_interval_ms: FloatRange = (300.0, 800.0)
    first_spawn_ms: float = Field(default=1000.0, ge=0.0)
    bird_speed_px_per_ms: FloatRange = (0.3, 0.6)
    vertical_speed_factor: float = Field(default=0.6, ge=0.0)
    size_scale: FloatRange = (0.5, 1.5)
    sine_frequency_per_px: FloatRange = (0.002, 0.007)
    sine_amplitude_px: FloatRange = (10.0, 50.0)
    offscreen_margin_px: float = Field(default=150.0, ge=0.0)
    vertical_margin_px: float = Field(default=200.0, ge=0.0)
    perfect_px: float = Field(default=35.0, gt=0.0)
    good_px: float = Field(default=70.0, gt=0.0)
    hit_radius_px: float = Field(default=100.0, gt=0.0)
    points_per_hit: float = Field(default=50.0, ge=0.0)
    combo_bonus_rate: float = Field(default=0.0, ge=0.0)
    focus_key: str = Field(default="1")
    focus_time_scale: float = Field(default=0.3, ge=0.0)
    focus_duration_ms: float = Field(default=6000.0, ge=0.0)
    focus_cooldown_ms: float = Field(default=6000.0, ge=0.0)
    splatter_particles: int = Field(default=5, ge=0)
    stray_input_policy: StrayInputPolicy = StrayInputPolicy.IGNORE

    @field_validator("spawn_interval_ms", "bird_speed_px_per_ms", "size_scale", "sine_frequency_per_px", "sine_amplitude_px")
    @classmethod
    def validate_ranges(cls, value: FloatRange) -> FloatRange:
        return _validate_range(value)

    @model_validator(mode="after")
    def validate_windows(self) -> "ArcheryConfig":
        _validate_increasing([self.perfect_px, self.good_px, self.hit_radius_px], "archery hit thresholds")
        return self


class FishingConfig(BaseModel):
    field_width: float = Field(default=1280.0, gt=0.0)
    power_speed_per_ms: float = Field(default=0.06, gt=0.0)
    top_pause_ms: float = Field(default=200.0, ge=0.0)
    min_cast_power: float = Field(default=5.0, ge=0.0, lt=100.0)
    cast_thresholds: List[float] = Field(default_factory=lambda: [5.0, 20.0, 50.0], description="perfect, great, good. Weak up to the minimum cast.")
    cast_scores: List[float] = Field(default_factory=lambda: [100.0, 75.0, 50.0, 25.0], description="perfect, great, good, weak")
    lure_taps: Tuple[int, int] = (1, 6)
    bite_delay_ms: float = Field(default=1000.0, ge=0.0)
    zone_center_deg: FloatRange = (40.0, 140.0)
    zone_width_deg: FloatRange = (20.0, 60.0)
    progress_start: float = Field(default=30.0, gt=0.0, lt=100.0)
    progress_gain_per_ms: float = Field(default=0.024, ge=0.0)
    progress_loss_per_ms: float = Field(default=0.018, ge=0.0)
    catch_bonus: float = Field(default=500.0, ge=0.0)

    @field_validator("zone_center_deg", "zone_width_deg")
    @classmethod
    def validate_ranges(cls, value: FloatRange) -> FloatRange:
        return _validate_range(value)

    @field_validator("lure_taps")
    @classmethod
    def validate_taps(cls, value: Tuple[int, int]) -> Tuple[int, int]:
        low, high = int(value[0]), int(value[1])
        if low < 1 or low > high:
            raise ValueError(f"lure_taps must satisfy 1 <= low <= high, got [{low}, {high}]")
        return (low, high)

    @model_validator(mode="after")
    def validate_cast_tiers(self) -> "FishingConfig":
        if len(self.cast_thresholds) != 3 or len(self.cast_scores) != 4:
            raise ValueError("cast_thresholds needs three values and cast_scores four")
        _validate_increasing(self.cast_thresholds, "cast_thresholds")
        if self.cast_thresholds[-1] >= 100.0 - self.min_cast_power:
            raise ValueError("cast_thresholds must stay below 100 - min_cast_power")
        return self


class MelodyConfig(BaseModel):
    lane_keys: List[str] = Field(default_factory=lambda: ["s", "d", "f", "j", "k", "l"])
    field_width: float = Field(default=800.0, gt=0.0)
    field_height: float = Field(default=800.0, gt=0.0)
    hit_line_y: float = Field(default=650.0, gt=0.0)
    perfect_px: float = Field(default=30.0, gt=0.0)
    good_px: float = Field(default=60.0, gt=0.0)
    miss_cutoff_px: float = Field(default=90.0, gt=0.0)
    search_range_px: float = Field(default=100.0, gt=0.0)
    perfect_score: float = Field(default=100.0, ge=0.0)
    good_score: float = Field(default=50.0, ge=0.0)
    combo_bonus_rate: float = Field(default=0.01, ge=0.0)
    hold_points_per_ms: float = Field(default=0.03, ge=0.0)
    countdown_labels: List[str] = Field(default_factory=lambda: ["3", "2", "1", "Start"])
    countdown_step_ms: float = Field(default=800.0, ge=0.0)
    target_duration_ms: float = Field(default=90000.0, gt=0.0)
    loop_gap_ms: float = Field(default=2000.0, ge=0.0)
    base_speed_px_per_frame: float = Field(default=6.0, gt=0.0)
    frame_ms: float = Field(default=16.66, gt=0.0)
    travel_px: float = Field(default=700.0, gt=0.0)
    hit_particles: int = Field(default=10, ge=0)
    song_catalog_path: Optional[str] = Field(default=None, description="Optional song catalog JSON. Built-in test song otherwise.")
    stray_input_policy: StrayInputPolicy = StrayInputPolicy.IGNORE

    @field_validator("lane_keys")
    @classmethod
    def validate_lane_keys(cls, value: List[str]) -> List[str]:
        normalized = [str(key).strip().lower() for key in value]
        if not normalized or any(not key for key in normalized):
            raise ValueError("lane_keys must be non-empty strings")
        if len(set(normalized)) != len(normalized):
            raise ValueError("lane_keys must be unique")
        return normalized

    @model_validator(mode="after")
    def validate_windows(self) -> "MelodyConfig":
        _validate_increasing(
            [self.perfect_px, self.good_px, self.miss_cutoff_px, self.search_range_px],
            "melody judgement thresholds",
        )
        return self


class HorseTamingConfig(BaseModel):
    field_width: float = Field(default=800.0, gt=0.0)
    field_height: float = Field(default=600.0, gt=0.0)
    prompt_speed_px_per_ms: float = Field(default=0.25, gt=0.0)
    prompt_keys: List[str] = Field(default_factory=lambda: ["w", "a", "s", "d", "w", "a", "s", "d"])
    spawn_base_interval_ms: float = Field(default=1500.0, gt=0.0)
    spawn_jitter: FloatRange = (0.7, 1.3)
    ring_radius_px: float = Field(default=200.0, gt=0.0)
    perfect_px: float = Field(default=10.0, gt=0.0)
    great_px: float = Field(default=30.0, gt=0.0)
    hit_threshold_px: float = Field(default=55.0, gt=0.0)
    expiry_margin_px: float = Field(default=60.0, gt=0.0)
    points_per_gain: float = Field(default=100.0, ge=0.0)
    combo_bonus_rate: float = Field(default=0.1, ge=0.0)
    progress_combo_factor: float = Field(default=0.1, ge=0.0)
    miss_stamina_penalty: float = Field(default=10.0, ge=0.0)
    stray_input_policy: StrayInputPolicy = StrayInputPolicy.CONSUME_AS_MISS

    @field_validator("prompt_keys")
    @classmethod
    def validate_prompt_keys(cls, value: List[str]) -> List[str]:
        normalized = [str(key).strip().lower() for key in value]
        unknown = [key for key in normalized if key not in {"w", "a", "s", "d"}]
        if not normalized or unknown:
            raise ValueError(f"prompt_keys must be drawn from w, a, s, d, got {value}")
        return normalized

    @field_validator("spawn_jitter")
    @classmethod
    def validate_ranges(cls, value: FloatRange) -> FloatRange:
        return _validate_range(value)

    @model_validator(mode="after")
    def validate_windows(self) -> "HorseTamingConfig":
        _validate_increasing([self.perfect_px, self.great_px, self.hit_threshold_px], "horse_taming thresholds")
        return self


class PitchPotConfig(BaseModel):
    rounds: int = Field(default=3, ge=1, le=99)
    field_width: float = Field(default=800.0, gt=0.0)
    field_height: float = Field(default=600.0, gt=0.0)
    countdown_labels: List[str] = Field(default_factory=lambda: ["3", "2", "1", "Start!"])
    countdown_step_ms: float = Field(default=1000.0, ge=0.0)
    spawn_x: FloatRange = (100.0, 700.0)
    spawn_y: FloatRange = (100.0, 500.0)
    bounce_bounds: Tuple[float, float, float, float] = (40.0, 40.0, 760.0, 560.0)
    min_separation_px: float = Field(default=100.0, gt=0.0)
    cursor_speed_px_per_ms: float = Field(default=0.4, gt=0.0)
    charge_radius_px: float = Field(default=35.0, gt=0.0)
    charge_gain_per_ms: float = Field(default=0.15, ge=0.0)
    charge_loss_per_ms: float = Field(default=0.3, ge=0.0)
    points_per_pot: float = Field(default=100.0, ge=0.0)
    combo_bonus_rate: float = Field(default=0.1, ge=0.0)
    next_round_delay_ms: float = Field(default=1000.0, ge=0.0)

    @field_validator("spawn_x", "spawn_y")
    @classmethod
    def validate_ranges(cls, value: FloatRange) -> FloatRange:
        return _validate_range(value)

    @field_validator("bounce_bounds")
    @classmethod
    def validate_bounds(cls, value: Tuple[float, float, float, float]) -> Tuple[float, float, float, float]:
        min_x, min_y, max_x, max_y = (float(item) for item in value)
        if min_x > max_x or min_y > max_y:
            raise ValueError("bounce_bounds must be (min_x, min_y, max_x, max_y)")
        return (min_x, min_y, max_x, max_y)


class HighScoreConfig(BaseModel):
    enabled: bool = Field(default=True)
    path: Optional[str] = Field(default=None, description="High score JSON. Platform user data dir when unset.")

    @field_validator("path")
    @classmethod
    def normalize_path(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None


class AppConfig(BaseModel):
    clock: ClockConfig = Field(default_factory=ClockConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    archery: ArcheryConfig = Field(default_factory=ArcheryConfig)
    fishing: FishingConfig = Field(default_factory=FishingConfig)
    melody: MelodyConfig = Field(default_factory=MelodyConfig)
    horse_taming: HorseTamingConfig = Field(default_factory=HorseTamingConfig)
    pitch_pot: PitchPotConfig = Field(default_factory=PitchPotConfig)
    high_scores: HighScoreConfig = Field(default_factory=HighScoreConfig)


def _default_config_candidates() -> List[Path]:
    config_directory = Path(user_config_dir(APP_NAME, APP_AUTHOR))
    return [
        Path.cwd() / "jianghu_config.json",
        config_directory / "jianghu_config.json",
        config_directory / "config.json",
    ]


def _resolve_config_path() -> Optional[Path]:
    explicit_path_text = os.environ.get("JIANGHU_CONFIG_PATH", "").strip()
    if explicit_path_text:
        explicit_path = Path(explicit_path_text)
        if not explicit_path.exists():
            raise FileNotFoundError(f"JIANGHU_CONFIG_PATH points at a missing file: {explicit_path}")
        return explicit_path

    for candidate_path in _default_config_candidates():
        if candidate_path.exists():
            return candidate_path

    return None


def _read_json_file_utf8(config_path: Path) -> Dict[str, Any]:
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exception:
        raise OSError(f"Failed to read config file: {config_path}. Error: {exception}") from exception

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exception:
        raise ValueError(f"Config file is not valid JSON: {config_path}. Error: {exception}") from exception

    if not isinstance(parsed, dict):
        raise ValueError(f"Config file root must be a JSON object: {config_path}")

    return parsed


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Environment overrides are optional. The config file is the primary source of truth.

    Override variables:
    - JIANGHU_LOG_LEVEL
    - JIANGHU_MAX_DELTA_MS
    - JIANGHU_ARCHERY_DURATION_SECONDS
    - JIANGHU_PITCH_POT_ROUNDS
    - JIANGHU_HIGH_SCORES_PATH
    - JIANGHU_HIGH_SCORES_ENABLED
    """
    def ensure_nested(config_root: Dict[str, Any], section_name: str) -> Dict[str, Any]:
        section = config_root.get(section_name)
        if isinstance(section, dict):
            return section
        section = {}
        config_root[section_name] = section
        return section

    updated_config = dict(config_dict)

    clock_section = ensure_nested(updated_config, "clock")
    logging_section = ensure_nested(updated_config, "logging")
    archery_section = ensure_nested(updated_config, "archery")
    pitch_pot_section = ensure_nested(updated_config, "pitch_pot")
    high_scores_section = ensure_nested(updated_config, "high_scores")

    def override_string(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "")
        if value_text.strip():
            target_dict[key_name] = value_text.strip()

    def override_int(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = int(value_text)
        except ValueError:
            return

    def override_float(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = float(value_text)
        except ValueError:
            return

    def override_bool(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip().lower()
        if not value_text:
            return
        truthy = {"1", "true", "yes", "on"}
        falsy = {"0", "false", "no", "off"}
        if value_text in truthy:
            target_dict[key_name] = True
        elif value_text in falsy:
            target_dict[key_name] = False

    override_string("JIANGHU_LOG_LEVEL", logging_section, "level")
    override_float("JIANGHU_MAX_DELTA_MS", clock_section, "max_delta_ms")
    override_float("JIANGHU_ARCHERY_DURATION_SECONDS", archery_section, "duration_seconds")
    override_int("JIANGHU_PITCH_POT_ROUNDS", pitch_pot_section, "rounds")
    override_string("JIANGHU_HIGH_SCORES_PATH", high_scores_section, "path")
    override_bool("JIANGHU_HIGH_SCORES_ENABLED", high_scores_section, "enabled")

    return updated_config


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, Optional[Path]]:
    resolved_path = config_path if config_path is not None else _resolve_config_path()
    json_dict: Dict[str, Any] = {} if resolved_path is None else _read_json_file_utf8(resolved_path)
    json_dict = _apply_environment_overrides(json_dict)

    try:
        config = AppConfig.model_validate(json_dict)
    except ValidationError as exception:
        source = str(resolved_path) if resolved_path is not None else "built-in defaults"
        raise ValueError(f"Config validation failed for {source}:\n{exception}") from exception

    return config, resolved_path


@lru_cache(maxsize=1)
def get_config() -> Tuple[AppConfig, Optional[Path]]:
    return load_config()


def to_json(config: AppConfig) -> str:
    return json.dumps(config.model_dump(mode="json"), ensure_ascii=False, indent=2)


def main() -> int:
    try:
        config, resolved_path = load_config()
    except Exception as exception:
        error_payload = {"ok": False, "error": str(exception)}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2))
        return 2

    output_payload = {
        "ok": True,
        "config_path": str(resolved_path) if resolved_path is not None else None,
        "config": json.loads(to_json(config)),
    }
    print(json.dumps(output_payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
