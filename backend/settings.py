"""Gradebook settings persisted next to the data tables (settings.json)."""
import json
import math
import os
from typing import Optional

import storage
from errors import InvalidScaleError
from models import ScoreScale

SETTINGS_FILE = "settings.json"


def _settings_path() -> str:
    return os.path.join(storage.DATA_DIR, SETTINGS_FILE)


def validate_scale(scale: ScoreScale) -> ScoreScale:
    if not (math.isfinite(scale.minimum) and math.isfinite(scale.maximum)):
        raise InvalidScaleError("Scale bounds must be finite numbers")
    if scale.maximum <= scale.minimum:
        raise InvalidScaleError(
            f"Scale maximum ({scale.maximum:g}) must be greater than minimum ({scale.minimum:g})")
    if scale.integer_only and (scale.minimum != int(scale.minimum)
                               or scale.maximum != int(scale.maximum)):
        raise InvalidScaleError("An integer-only scale needs whole-number bounds")
    return scale


def scale_from_config(config_data: dict) -> ScoreScale:
    """Build a ScoreScale from a parsed settings dict, with defaults."""
    raw = config_data.get("score_scale", {})
    return validate_scale(ScoreScale(
        minimum=float(raw.get("minimum", 1.0)),
        maximum=float(raw.get("maximum", 10.0)),
        integer_only=bool(raw.get("integer_only", False)),
    ))


def load_settings() -> Optional[dict]:
    path = _settings_path()
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_scale() -> ScoreScale:
    return scale_from_config(load_settings() or {})


def save_scale(scale: ScoreScale) -> None:
    validate_scale(scale)
    config_data = load_settings() or {}
    config_data["score_scale"] = {
        "minimum": scale.minimum,
        "maximum": scale.maximum,
        "integer_only": scale.integer_only,
    }
    os.makedirs(storage.DATA_DIR, exist_ok=True)
    with open(_settings_path(), "w", encoding="utf-8") as f:
        json.dump(config_data, f, indent=2)
        f.write("\n")
