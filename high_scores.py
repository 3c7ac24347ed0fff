# high_scores.py
from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import paths
from gameplay_models import SessionSummary

logger = logging.getLogger(__name__)


class HighScoreError(Exception):
    pass


@dataclass(frozen=True)
class HighScoreRecord:
    session_id: str
    score: int
    max_combo: int
    recorded_at_epoch_seconds: int


@dataclass(frozen=True)
class HighScoreResult:
    session_id: str
    previous_best: int
    best: int
    is_new_record: bool


class HighScoreStore:
    """
    Best score per session id, kept in one JSON file.

    - Session ids look like "melody:molihua" or "archery"
    - Scores are compared and stored as displayed (rounded down)
    - A corrupt file is treated as empty and overwritten on the next record
    """

    def __init__(self, *, store_path: Optional[Path] = None) -> None:
        self._store_path = Path(store_path) if store_path is not None else paths.default_high_scores_path()
        self._records: Dict[str, HighScoreRecord] = {}
        self._loaded = False

    @property
    def store_path(self) -> Path:
        return self._store_path

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        self._records = {}

        if not self._store_path.exists():
            return

        try:
            payload = json.loads(self._store_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exception:
            logger.warning("Ignoring unreadable high score file %s: %s", self._store_path, exception)
            return

        if not isinstance(payload, dict):
            logger.warning("Ignoring high score file with non-object root: %s", self._store_path)
            return

        for session_id, entry in payload.items():
            record = _record_from_payload(str(session_id), entry)
            if record is not None:
                self._records[record.session_id] = record

    def _save(self) -> None:
        payload = {
            session_id: {
                "score": record.score,
                "max_combo": record.max_combo,
                "recorded_at": record.recorded_at_epoch_seconds,
            }
            for session_id, record in sorted(self._records.items())
        }
        try:
            self._store_path.parent.mkdir(parents=True, exist_ok=True)
            temporary_path = self._store_path.with_suffix(".json.tmp")
            temporary_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            temporary_path.replace(self._store_path)
        except OSError as exception:
            raise HighScoreError(f"Failed to write high scores: {self._store_path}. Error: {exception}") from exception

    def best(self, session_id: str) -> int:
        self._load()
        record = self._records.get(str(session_id))
        return 0 if record is None else int(record.score)

    def record(self, session_id: str) -> Optional[HighScoreRecord]:
        self._load()
        return self._records.get(str(session_id))

    def submit(self, summary: SessionSummary) -> HighScoreResult:
        self._load()
        session_id = str(summary.session_id)
        previous_best = self.best(session_id)
        score = int(math.floor(float(summary.final_score)))

        if score <= previous_best:
            return HighScoreResult(session_id=session_id, previous_best=previous_best, best=previous_best, is_new_record=False)

        self._records[session_id] = HighScoreRecord(
            session_id=session_id,
            score=score,
            max_combo=int(summary.max_combo),
            recorded_at_epoch_seconds=int(time.time()),
        )
        self._save()
        logger.info("New high score for %s: %d (was %d)", session_id, score, previous_best)
        return HighScoreResult(session_id=session_id, previous_best=previous_best, best=score, is_new_record=True)


def _record_from_payload(session_id: str, entry: Any) -> Optional[HighScoreRecord]:
    if isinstance(entry, (int, float)):
        return HighScoreRecord(session_id=session_id, score=int(entry), max_combo=0, recorded_at_epoch_seconds=0)
    if not isinstance(entry, dict):
        return None
    try:
        return HighScoreRecord(
            session_id=session_id,
            score=int(entry.get("score", 0)),
            max_combo=int(entry.get("max_combo", 0)),
            recorded_at_epoch_seconds=int(entry.get("recorded_at", 0)),
        )
    except (TypeError, ValueError):
        return None
