# tools/body_signature.py
"""
FitForge AI — Body Signature Calculator
=======================================
Deterministic "fingerprint" of a physique built from validated measurements:

  - Adonis Index (shoulder-to-waist ratio) and its distance from PHI
  - Proportion ratios and a symmetry coefficient against ideal ratios
  - Composition hash (32-bit rolling hash, not cryptographic)
  - Body type classification
  - Aesthetic score (0-100)
  - Human-readable unique id: BODYTYPE-BF%-HASH-ADONIS

Same measurements always give the same signature, so ids can be compared
across scans and across implementations (the hash and the decimal
formatting follow JavaScript semantics exactly).

This is a pure math tool (no AI required).
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from tools.schema_validator import BodyAnalysisRecord

# =============================================================================
# CONSTANTS
# =============================================================================

PHI = 1.618034

IDEAL_RATIOS = {
    "waist_to_hip": 0.85,
    "chest_to_waist": 1.3,
    "arm_to_chest": 0.36,
    "leg_torso": 0.7,
}

BODY_TYPES = (
    "V-Taper Aesthetic",
    "Classic Physique",
    "Rectangular Build",
    "Apple Shape",
    "Pear Shape",
    "Balanced Build",
)

# Aesthetic score weights
GOLDEN_RATIO_WEIGHT = 40
SYMMETRY_WEIGHT = 30
COMPOSITION_WEIGHT = 0.2
RATING_WEIGHT = 1.0

HASH_PREFIX_LENGTH = 6


# =============================================================================
# MODELS
# =============================================================================

class DetailedMetrics(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    waist_to_hip_ratio: float = Field(alias="waistToHipRatio")
    shoulder_to_waist_ratio: float = Field(alias="shoulderToWaistRatio")
    chest_to_waist_ratio: float = Field(alias="chestToWaistRatio")
    arm_to_chest_ratio: float = Field(alias="armToChestRatio")
    leg_torso_balance: float = Field(alias="legTorsoBalance")
    upper_lower_symmetry: float = Field(alias="upperLowerSymmetry")


class BodySignature(BaseModel):
    """Immutable signature attached to an analysis."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    unique_id: str = Field(alias="uniqueId")
    golden_ratio_score: float = Field(alias="goldenRatioScore")
    adonis_index: float = Field(alias="adonisIndex")
    symmetry_coefficient: float = Field(alias="symmetryCoefficient")
    composition_hash: str = Field(alias="compositionHash")
    body_type_classification: str = Field(alias="bodyTypeClassification")
    aesthetic_score: float = Field(alias="aestheticScore")
    detailed_metrics: DetailedMetrics = Field(alias="detailedMetrics")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# =============================================================================
# JAVASCRIPT-COMPATIBLE FORMATTING
# =============================================================================

def js_to_fixed(value: float, digits: int) -> str:
    """
    Format like JavaScript ``Number.prototype.toFixed``.

    Rounds the exact binary value with ties away from zero, so
    ``js_to_fixed(15.25, 1) == "15.3"`` where Python's format gives "15.2".
    """
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def js_number(value: float) -> str:
    """Format like JavaScript number-to-string for plain values (102, 102.5)."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def rolling_hash(text: str) -> str:
    """
    32-bit rolling hash (``h = h*31 + code``, signed int32 wrap), rendered as
    uppercase hex of its absolute value.

    Example:
        >>> rolling_hash("hello")
        '5E918D2'
    """
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return format(abs(h), "X")


def _rounded(value: float, digits: int) -> float:
    return float(js_to_fixed(value, digits))


# =============================================================================
# CLASSIFICATION
# =============================================================================

def classify_body_type(
    adonis_index: float,
    waist_to_hip: float,
    chest_to_waist: float,
    chest_cm: float,
    waist_cm: float,
    hips_cm: float,
) -> str:
    """First matching rule wins; always returns one of ``BODY_TYPES``."""
    if adonis_index >= 1.5 and waist_to_hip < 0.9:
        return "V-Taper Aesthetic"
    if adonis_index >= 1.4 and chest_to_waist >= 1.3:
        return "Classic Physique"
    if waist_to_hip > 0.95 and chest_to_waist < 1.2:
        return "Rectangular Build"
    if waist_cm > chest_cm:
        return "Apple Shape"
    if hips_cm > chest_cm and waist_to_hip < 0.85:
        return "Pear Shape"
    return "Balanced Build"


# =============================================================================
# MAIN TOOL
# =============================================================================

def compute_body_signature(record: BodyAnalysisRecord) -> BodySignature:
    """
    Calculate the mathematical Body Signature for a validated analysis.

    Differentiates two people with the same body fat % but different
    physiques. All denominators are safe because the validator guarantees
    in-range measurements.

    Args:
        record: Validated ``BodyAnalysisRecord``.

    Returns:
        ``BodySignature`` with:
        - uniqueId: e.g. "BalancedBuild-BF15.5-1A2B3C-AI0.55"
        - goldenRatioScore / symmetryCoefficient: percentages, 2 decimals
        - adonisIndex and detailedMetrics: 3 decimals
        - aestheticScore: 0-100, 2 decimals
        - compositionHash and bodyTypeClassification
    """
    m = record.measurements
    body_fat = record.body_fat_percentage

    adonis_index = m.shoulder_width_cm / m.waist_cm
    golden_ratio_score = 1 - abs(adonis_index - PHI) / PHI

    waist_to_hip = m.waist_cm / m.hips_cm
    chest_to_waist = m.chest_cm / m.waist_cm
    arm_to_chest = m.bicep_cm / m.chest_cm
    leg_torso = m.thigh_cm / m.waist_cm
    upper_lower = (m.chest_cm + m.shoulder_width_cm) / (m.thigh_cm + m.calf_cm)

    symmetry_variance = (
        abs(waist_to_hip - IDEAL_RATIOS["waist_to_hip"])
        + abs(chest_to_waist - IDEAL_RATIOS["chest_to_waist"])
        + abs(arm_to_chest - IDEAL_RATIOS["arm_to_chest"])
        + abs(leg_torso - IDEAL_RATIOS["leg_torso"])
    )
    symmetry_coefficient = max(0.0, 1 - symmetry_variance)

    composition_string = "-".join([
        js_to_fixed(body_fat, 2),
        js_to_fixed(adonis_index, 3),
        js_to_fixed(waist_to_hip, 3),
        js_to_fixed(chest_to_waist, 3),
        js_to_fixed(arm_to_chest, 3),
        js_number(m.chest_cm),
        js_number(m.waist_cm),
        js_number(m.hips_cm),
    ])
    composition_hash = rolling_hash(composition_string)

    body_type = classify_body_type(adonis_index, waist_to_hip, chest_to_waist,
                                   m.chest_cm, m.waist_cm, m.hips_cm)

    aesthetic_score = (
        golden_ratio_score * GOLDEN_RATIO_WEIGHT
        + symmetry_coefficient * SYMMETRY_WEIGHT
        + (100 - body_fat * 2) * COMPOSITION_WEIGHT
        + record.physique_rating * RATING_WEIGHT
    )
    aesthetic_score = min(100.0, max(0.0, aesthetic_score))

    unique_id = "-".join([
        "".join(body_type.split()),
        f"BF{js_to_fixed(body_fat, 1)}",
        composition_hash[:HASH_PREFIX_LENGTH],
        f"AI{js_to_fixed(adonis_index, 2)}",
    ])

    return BodySignature(
        unique_id=unique_id,
        golden_ratio_score=_rounded(golden_ratio_score * 100, 2),
        adonis_index=_rounded(adonis_index, 3),
        symmetry_coefficient=_rounded(symmetry_coefficient * 100, 2),
        composition_hash=composition_hash,
        body_type_classification=body_type,
        aesthetic_score=_rounded(aesthetic_score, 2),
        detailed_metrics=DetailedMetrics(
            waist_to_hip_ratio=_rounded(waist_to_hip, 3),
            shoulder_to_waist_ratio=_rounded(adonis_index, 3),
            chest_to_waist_ratio=_rounded(chest_to_waist, 3),
            arm_to_chest_ratio=_rounded(arm_to_chest, 3),
            leg_torso_balance=_rounded(leg_torso, 3),
            upper_lower_symmetry=_rounded(upper_lower, 3),
        ),
    )


# =============================================================================
# ADDITIONAL TOOL: Signature Lookup
# =============================================================================

_COMPACT_BODY_TYPES = {"".join(name.split()): name for name in BODY_TYPES}


def _body_fat_label(body_fat: float) -> str:
    if body_fat < 10:
        return "Very Lean"
    if body_fat < 15:
        return "Lean"
    if body_fat < 20:
        return "Fit"
    if body_fat < 25:
        return "Average"
    return "High"


def _adonis_label(adonis_index: float) -> str:
    if adonis_index >= 1.6:
        return "Excellent (Near Golden Ratio)"
    if adonis_index >= 1.4:
        return "Very Good"
    if adonis_index >= 1.2:
        return "Good"
    return "Room for Improvement"


def describe_signature(unique_id: str) -> Dict[str, Any]:
    """
    Decode a signature unique id and interpret it.

    The id is split from the right so classifications that contain a hyphen
    ("V-TaperAesthetic") stay intact.

    Args:
        unique_id: Id in the BODYTYPE-BF%-HASH-ADONIS format.

    Returns:
        Dictionary with:
        - uniqueId, bodyTypeClassification, bodyFatPercentage,
          compositionHash, adonisIndex
        - interpretation: {"bodyFat": label, "adonisRating": label}

    Raises:
        ValueError: if the id does not follow the format.

    Example:
        >>> describe_signature("ClassicPhysique-BF12.0-4F1A2B-AI1.45")["interpretation"]
        {'bodyFat': 'Lean', 'adonisRating': 'Very Good'}
    """
    if not isinstance(unique_id, str):
        raise ValueError("Invalid unique ID format")

    parts = unique_id.rsplit("-", 3)
    if len(parts) != 4:
        raise ValueError("Invalid unique ID format")

    compact_type, body_fat_part, hash_part, adonis_part = parts
    body_type = _COMPACT_BODY_TYPES.get(compact_type)
    if body_type is None:
        raise ValueError(f"Unknown body type '{compact_type}'")
    if not body_fat_part.startswith("BF") or not adonis_part.startswith("AI") or not hash_part:
        raise ValueError("Invalid unique ID format")

    try:
        body_fat = float(body_fat_part[2:])
        adonis_index = float(adonis_part[2:])
    except ValueError:
        raise ValueError("Invalid unique ID format") from None

    return {
        "uniqueId": unique_id,
        "bodyTypeClassification": body_type,
        "bodyFatPercentage": body_fat,
        "compositionHash": hash_part,
        "adonisIndex": adonis_index,
        "interpretation": {
            "bodyFat": _body_fat_label(body_fat),
            "adonisRating": _adonis_label(adonis_index),
        },
    }


__all__ = [
    "PHI",
    "BODY_TYPES",
    "BodySignature",
    "DetailedMetrics",
    "js_to_fixed",
    "js_number",
    "rolling_hash",
    "classify_body_type",
    "compute_body_signature",
    "describe_signature",
]
