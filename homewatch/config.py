# homewatch/config.py
from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Dict

import yaml

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = REPO_ROOT / "config" / "config.yaml"

DEFAULT_DATE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_STORE_URL = "sqlite+aiosqlite:///data/detections.db"


def load_config(path: str | Path | None = None) -> Dict[str, Any]:
    """
    Read the YAML config. Path: argument, else $HOMEWATCH_CONFIG, else config/config.yaml.
    A missing file yields {} so every section falls back to its defaults.
    """
    cfg_path = Path(path or os.getenv("HOMEWATCH_CONFIG") or DEFAULT_CONFIG_PATH)
    if not cfg_path.exists():
        return {}
    cfg = yaml.safe_load(cfg_path.read_text(encoding="utf-8"))
    return cfg if isinstance(cfg, dict) else {}


def section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    return cfg.get(name, {}) or {}


def date_time_format(cfg: Dict[str, Any]) -> str:
    # $DATE_TIME_FORMAT wins; it is a strftime pattern (e.g. "%d/%m %H:%M"), not moment.js
    return os.getenv("DATE_TIME_FORMAT") or section(cfg, "media").get("date_time_format", DEFAULT_DATE_TIME_FORMAT)


def store_url(cfg: Dict[str, Any]) -> str:
    return os.getenv("HOMEWATCH_STORE_URL") or section(cfg, "store").get("url", DEFAULT_STORE_URL)


def output_dir(cfg: Dict[str, Any]) -> Path:
    out = Path(section(cfg, "files").get("output_dir", "output"))
    return out if out.is_absolute() else (REPO_ROOT / out)
