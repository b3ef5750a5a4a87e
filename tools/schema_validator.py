# tools/schema_validator.py
"""
FitForge AI — Body Analysis Schema Validator
============================================
Coerces the untrusted JSON recovered from a vision model into a fully
populated, in-range ``BodyAnalysisRecord``.

Every field is checked on its own: if it is missing, of the wrong type or
outside its plausible range it is replaced with a fixed default and the
correction is recorded. Validation never fails.
"""

import logging
import math
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


# =============================================================================
# RANGE TABLES
# =============================================================================

BODY_FAT_RANGE = (5, 50)
PHYSIQUE_RATING_RANGE = (1, 10)
CONFIDENCE_RANGE = (0, 1)

# wire key -> (min_cm, max_cm, default_cm)
MEASUREMENT_RANGES: Dict[str, Tuple[float, float, float]] = {
    "chestCm": (70, 140, 100),
    "waistCm": (60, 130, 85),
    "hipsCm": (70, 140, 95),
    "bicepCm": (20, 50, 35),
    "thighCm": (35, 80, 55),
    "shoulderWidthCm": (35, 60, 45),
    "neckCm": (28, 50, 38),
    "calfCm": (25, 50, 38),
    "forearmCm": (20, 40, 28),
    "heightCm": (140, 220, 175),
}

MUSCLE_MASS_LEVELS = ("low", "moderate", "high")
FITNESS_LEVELS = ("beginner", "intermediate", "advanced")
POSTURE_QUALITIES = ("good", "fair", "needs improvement")
DEVELOPMENT_LEVELS = ("low", "moderate", "good", "excellent")
MUSCLE_GROUPS = ("chest", "back", "shoulders", "arms", "core", "legs")

DEFAULTS: Dict[str, Any] = {
    "bodyFatPercentage": 20,
    "physiqueRating": 5,
    "muscleMassLevel": "moderate",
    "fitnessLevel": "intermediate",
    "confidence": 0.75,
    "posture": {"quality": "good", "notes": "Normal posture"},
    "muscleDevelopmentLevel": "moderate",
    "focusAreas": ["overall strength", "core stability"],
    "workoutSplit": "Full body training 3x per week",
    "nutritionTips": "Eat a balanced diet with adequate protein (1.6g per kg bodyweight)",
    "progressGoals": "Build consistent training habits over the next 3 months",
    "notes": (
        "Estimated from photos. For the most accurate results, use a DEXA scan "
        "or professional body composition analysis."
    ),
}

# Fields the provider is asked to supply, used for completeness
COMPLETENESS_TOP_LEVEL = {
    "bodyFatPercentage": "number",
    "muscleMassLevel": "string",
    "physiqueRating": "number",
    "fitnessLevel": "string",
    "muscleDevelopment": "object",
    "recommendations": "object",
}


# =============================================================================
# RECORD MODELS
# =============================================================================

MuscleLevel = Literal["low", "moderate", "good", "excellent"]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> Dict[str, Any]:
        """Dump with the camelCase keys the provider and frontend use."""
        return self.model_dump(by_alias=True)


class Measurements(_WireModel):
    chest_cm: float = Field(100, alias="chestCm")
    waist_cm: float = Field(85, alias="waistCm")
    hips_cm: float = Field(95, alias="hipsCm")
    bicep_cm: float = Field(35, alias="bicepCm")
    thigh_cm: float = Field(55, alias="thighCm")
    shoulder_width_cm: float = Field(45, alias="shoulderWidthCm")
    neck_cm: float = Field(38, alias="neckCm")
    calf_cm: float = Field(38, alias="calfCm")
    forearm_cm: float = Field(28, alias="forearmCm")
    height_cm: float = Field(175, alias="heightCm")


class Posture(_WireModel):
    quality: Literal["good", "fair", "needs improvement"] = "good"
    notes: str = "Normal posture"


class MuscleDevelopment(_WireModel):
    chest: MuscleLevel = "moderate"
    back: MuscleLevel = "moderate"
    shoulders: MuscleLevel = "moderate"
    arms: MuscleLevel = "moderate"
    core: MuscleLevel = "moderate"
    legs: MuscleLevel = "moderate"


class Recommendations(_WireModel):
    focus_areas: List[str] = Field(default_factory=lambda: list(DEFAULTS["focusAreas"]), alias="focusAreas")
    workout_split: str = Field(DEFAULTS["workoutSplit"], alias="workoutSplit")
    nutrition_tips: str = Field(DEFAULTS["nutritionTips"], alias="nutritionTips")
    progress_goals: str = Field(DEFAULTS["progressGoals"], alias="progressGoals")


class BodyAnalysisRecord(_WireModel):
    """Validated body composition analysis (all fields in range)."""
    body_fat_percentage: float = Field(20, alias="bodyFatPercentage")
    muscle_mass_level: Literal["low", "moderate", "high"] = Field("moderate", alias="muscleMassLevel")
    physique_rating: int = Field(5, alias="physiqueRating")
    measurements: Measurements = Field(default_factory=Measurements)
    posture: Posture = Field(default_factory=Posture)
    fitness_level: Literal["beginner", "intermediate", "advanced"] = Field("intermediate", alias="fitnessLevel")
    muscle_development: MuscleDevelopment = Field(default_factory=MuscleDevelopment, alias="muscleDevelopment")
    recommendations: Recommendations = Field(default_factory=Recommendations)
    confidence: float = 0.75
    notes: str = DEFAULTS["notes"]


# =============================================================================
# TYPE HELPERS
# =============================================================================

def _is_number(value: Any) -> bool:
    """JSON number check: int/float, not bool, finite."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _in_range(value: Any, bounds: Tuple[float, float]) -> bool:
    return _is_number(value) and bounds[0] <= value <= bounds[1]


def _as_integer(value: Any) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if _is_number(value) and float(value).is_integer():
        return int(value)
    return None


# =============================================================================
# FIELD VALIDATORS
# =============================================================================

def _number_field(raw: Dict[str, Any], key: str, bounds: Tuple[float, float],
                  default: float, path: str, corrections: List[str]) -> float:
    value = raw.get(key)
    if _in_range(value, bounds):
        return value
    logger.debug("Correcting %s: %r -> %r", path, value, default)
    corrections.append(path)
    return default


def _choice_field(raw: Dict[str, Any], key: str, allowed: Tuple[str, ...],
                  default: str, path: str, corrections: List[str]) -> str:
    value = raw.get(key)
    if isinstance(value, str) and value in allowed:
        return value
    logger.debug("Correcting %s: %r -> %r", path, value, default)
    corrections.append(path)
    return default


def _text_field(raw: Dict[str, Any], key: str, default: str, path: str, corrections: List[str]) -> str:
    value = raw.get(key)
    if isinstance(value, str):
        return value
    corrections.append(path)
    return default


def _validate_physique_rating(raw: Dict[str, Any], corrections: List[str]) -> int:
    value = _as_integer(raw.get("physiqueRating"))
    if value is not None and PHYSIQUE_RATING_RANGE[0] <= value <= PHYSIQUE_RATING_RANGE[1]:
        return value
    corrections.append("physiqueRating")
    return DEFAULTS["physiqueRating"]


def _validate_measurements(raw: Dict[str, Any], corrections: List[str]) -> Dict[str, float]:
    source = raw.get("measurements")
    if not isinstance(source, dict):
        source = {}

    measurements = {}
    for key, (low, high, default) in MEASUREMENT_RANGES.items():
        measurements[key] = _number_field(source, key, (low, high), default, f"measurements.{key}", corrections)
    return measurements


def _validate_posture(raw: Dict[str, Any], corrections: List[str]) -> Dict[str, str]:
    source = raw.get("posture")
    if not isinstance(source, dict):
        corrections.append("posture")
        return dict(DEFAULTS["posture"])

    return {
        "quality": _choice_field(source, "quality", POSTURE_QUALITIES, "good", "posture.quality", corrections),
        "notes": _text_field(source, "notes", DEFAULTS["posture"]["notes"], "posture.notes", corrections),
    }


def _validate_muscle_development(raw: Dict[str, Any], corrections: List[str]) -> Dict[str, str]:
    source = raw.get("muscleDevelopment")
    if not isinstance(source, dict):
        corrections.append("muscleDevelopment")
        return {group: DEFAULTS["muscleDevelopmentLevel"] for group in MUSCLE_GROUPS}

    return {
        group: _choice_field(source, group, DEVELOPMENT_LEVELS, DEFAULTS["muscleDevelopmentLevel"],
                             f"muscleDevelopment.{group}", corrections)
        for group in MUSCLE_GROUPS
    }


def _validate_recommendations(raw: Dict[str, Any], corrections: List[str]) -> Dict[str, Any]:
    source = raw.get("recommendations")
    if not isinstance(source, dict):
        corrections.append("recommendations")
        source = {}

    focus_areas = source.get("focusAreas")
    if isinstance(focus_areas, list):
        kept = [area for area in focus_areas if isinstance(area, str)]
        if len(kept) != len(focus_areas):
            corrections.append("recommendations.focusAreas")
        focus_areas = kept
    else:
        corrections.append("recommendations.focusAreas")
        focus_areas = list(DEFAULTS["focusAreas"])

    return {
        "focusAreas": focus_areas,
        "workoutSplit": _text_field(source, "workoutSplit", DEFAULTS["workoutSplit"],
                                    "recommendations.workoutSplit", corrections),
        "nutritionTips": _text_field(source, "nutritionTips", DEFAULTS["nutritionTips"],
                                     "recommendations.nutritionTips", corrections),
        "progressGoals": _text_field(source, "progressGoals", DEFAULTS["progressGoals"],
                                     "recommendations.progressGoals", corrections),
    }


# =============================================================================
# MAIN TOOL
# =============================================================================

def sanitize_body_analysis(raw: Any) -> Tuple[BodyAnalysisRecord, List[str]]:
    """
    Validate an extracted body analysis and fill in defaults.

    Each field is corrected independently; fixing one field never affects
    another. Accepts any value: non-objects are treated as an empty record,
    and an existing ``BodyAnalysisRecord`` is re-validated from its wire form.

    Args:
        raw: JSON object recovered from the vision provider.

    Returns:
        (record, corrections)
        - record: fully populated ``BodyAnalysisRecord``
        - corrections: dotted paths of every field replaced by a default
          (e.g. "measurements.thighCm")

    Example:
        >>> record, fixed = sanitize_body_analysis({"measurements": {"thighCm": 30}})
        >>> record.measurements.thigh_cm
        55.0
    """
    if isinstance(raw, BodyAnalysisRecord):
        raw = raw.to_wire()
    if not isinstance(raw, dict):
        raw = {}

    corrections: List[str] = []

    validated = {
        "bodyFatPercentage": _number_field(raw, "bodyFatPercentage", BODY_FAT_RANGE,
                                           DEFAULTS["bodyFatPercentage"], "bodyFatPercentage", corrections),
        "muscleMassLevel": _choice_field(raw, "muscleMassLevel", MUSCLE_MASS_LEVELS,
                                         DEFAULTS["muscleMassLevel"], "muscleMassLevel", corrections),
        "physiqueRating": _validate_physique_rating(raw, corrections),
        "measurements": _validate_measurements(raw, corrections),
        "posture": _validate_posture(raw, corrections),
        "fitnessLevel": _choice_field(raw, "fitnessLevel", FITNESS_LEVELS,
                                      DEFAULTS["fitnessLevel"], "fitnessLevel", corrections),
        "muscleDevelopment": _validate_muscle_development(raw, corrections),
        "recommendations": _validate_recommendations(raw, corrections),
        "confidence": _number_field(raw, "confidence", CONFIDENCE_RANGE,
                                    DEFAULTS["confidence"], "confidence", corrections),
        "notes": _text_field(raw, "notes", DEFAULTS["notes"], "notes", corrections),
    }

    if corrections:
        logger.info("Body analysis validator corrected %d field(s): %s",
                    len(corrections), ", ".join(corrections))

    return BodyAnalysisRecord.model_validate(validated), corrections


def validate_body_analysis(raw: Any) -> BodyAnalysisRecord:
    """Return only the validated record (see ``sanitize_body_analysis``)."""
    record, _ = sanitize_body_analysis(raw)
    return record


def measure_completeness(raw: Any) -> float:
    """
    Fraction of the expected fields the provider actually supplied.

    Must be called on the extracted record BEFORE validation, otherwise the
    defaults would make every record look complete. Checks presence and JSON
    type only (no ranges) for the 10 measurements plus 6 top-level fields.

    Args:
        raw: JSON object recovered from the vision provider.

    Returns:
        A value between 0.0 and 1.0.
    """
    if not isinstance(raw, dict):
        return 0.0

    type_checks = {
        "number": _is_number,
        "string": lambda v: isinstance(v, str),
        "object": lambda v: isinstance(v, dict),
    }

    measurements = raw.get("measurements")
    if not isinstance(measurements, dict):
        measurements = {}

    present = sum(1 for key in MEASUREMENT_RANGES if _is_number(measurements.get(key)))
    present += sum(
        1 for key, kind in COMPLETENESS_TOP_LEVEL.items()
        if key in raw and type_checks[kind](raw[key])
    )

    total = len(MEASUREMENT_RANGES) + len(COMPLETENESS_TOP_LEVEL)
    return present / total


__all__ = [
    "BodyAnalysisRecord",
    "Measurements",
    "Posture",
    "MuscleDevelopment",
    "Recommendations",
    "MEASUREMENT_RANGES",
    "MUSCLE_GROUPS",
    "DEFAULTS",
    "sanitize_body_analysis",
    "validate_body_analysis",
    "measure_completeness",
]
