# -*- coding: utf-8 -*-
########################
# paths.py
########################
# Purpose:
# - Central filesystem path helpers for the app.
# - Defines where song catalogs and high scores live.
#
# Design notes:
# - Keep path derivation consistent across modules.
# - No Qt usage. Return pathlib.Path only.
# - Nothing here creates directories. Writers create parents on demand.
#
########################
# Interfaces:
# Public functions:
# - app_root_dir() -> pathlib.Path
# - songs_dir() -> pathlib.Path
# - default_song_catalog_path() -> pathlib.Path
# - user_data_path() -> pathlib.Path
# - default_high_scores_path() -> pathlib.Path
#
# Inputs:
# - None (derived from the launched Python entrypoint file location and platformdirs).
#
# Outputs:
# - Paths used by melody.py (song catalog) and high_scores.py.
#
########################

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from platformdirs import user_data_dir

APP_NAME = "Jianghu"
APP_AUTHOR = "Jianghu"


def _entrypoint_file_path() -> Optional[Path]:
    """Best-effort resolution of the launched Python entrypoint file."""
    main_module = sys.modules.get("__main__")
    main_file = getattr(main_module, "__file__", None)
    if main_file:
        return Path(str(main_file)).resolve()

    argv0 = str(sys.argv[0] or "").strip()
    if argv0 and argv0 not in {"-c", "-m"}:
        try:
            return Path(argv0).resolve()
        except OSError:
            return None

    return None


def app_root_dir() -> Path:
    """Return the directory containing the launched .py file, or the working directory."""
    entrypoint_path = _entrypoint_file_path()
    if entrypoint_path is not None:
        return entrypoint_path.parent

    return Path.cwd().resolve()


def songs_dir() -> Path:
    """Return the song catalog directory (not created automatically)."""
    return app_root_dir() / "songs"


def default_song_catalog_path() -> Path:
    return songs_dir() / "songs.json"


def user_data_path() -> Path:
    return Path(user_data_dir(APP_NAME, APP_AUTHOR))


def default_high_scores_path() -> Path:
    return user_data_path() / "high_scores.json"
