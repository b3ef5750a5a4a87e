# tools/confidence_scorer.py
"""
FitForge AI — Body Scan Confidence Scorer
=========================================
Blends four independent signals into one confidence value:

  photos        35%  more angles -> better estimate
  consistency   25%  do the measurements agree with each other?
  completeness  20%  how much did the model actually supply?
  provider      20%  the model's self-reported confidence

The result is clamped to [0.4, 0.99]: never fully certain, never below a
floor reflecting that some signal was present.
"""

from typing import Dict

from tools.schema_validator import BodyAnalysisRecord, Measurements

# =============================================================================
# CONSTANTS
# =============================================================================

CONFIDENCE_WEIGHTS = {
    "photos": 0.35,
    "consistency": 0.25,
    "completeness": 0.20,
    "provider": 0.20,
}

PHOTO_FACTORS = {1: 0.65, 2: 0.85}
MAX_PHOTO_FACTOR = 1.0

CONSISTENCY_PENALTIES = {
    "shoulders_wider_than_chest": 0.10,
    "chest_smaller_than_waist": 0.15,
    "implausible_waist_to_hip": 0.10,
    "thigh_not_larger_than_calf": 0.10,
    "bicep_not_larger_than_forearm": 0.10,
}
WAIST_TO_HIP_BOUNDS = (0.7, 1.1)
CONSISTENCY_FLOOR = 0.5

CONFIDENCE_FLOOR = 0.4
CONFIDENCE_CEILING = 0.99


# =============================================================================
# FACTORS
# =============================================================================

def photo_factor(photo_count: int) -> float:
    if photo_count >= 3:
        return MAX_PHOTO_FACTOR
    return PHOTO_FACTORS.get(photo_count, PHOTO_FACTORS[1])


def consistency_issues(m: Measurements) -> Dict[str, bool]:
    """Which anatomical consistency checks fail for these measurements."""
    waist_to_hip = m.waist_cm / m.hips_cm
    return {
        "shoulders_wider_than_chest": m.shoulder_width_cm > m.chest_cm,
        "chest_smaller_than_waist": m.chest_cm < m.waist_cm,
        "implausible_waist_to_hip": not (WAIST_TO_HIP_BOUNDS[0] <= waist_to_hip <= WAIST_TO_HIP_BOUNDS[1]),
        "thigh_not_larger_than_calf": m.thigh_cm <= m.calf_cm,
        "bicep_not_larger_than_forearm": m.bicep_cm <= m.forearm_cm,
    }


def consistency_factor(m: Measurements) -> float:
    # Penalties stack
    factor = 1.0
    for issue, failed in consistency_issues(m).items():
        if failed:
            factor -= CONSISTENCY_PENALTIES[issue]
    return max(CONSISTENCY_FLOOR, factor)


# =============================================================================
# MAIN TOOL
# =============================================================================

def score_confidence(
    record: BodyAnalysisRecord,
    photo_count: int,
    completeness: float = 1.0,
) -> float:
    """
    Compute the blended confidence for a validated analysis.

    Args:
        record: Validated analysis (measurements assumed in range).
        photo_count: Number of photos sent to the provider.
        completeness: Output of ``measure_completeness`` on the record as
                      extracted, before defaults were filled in.

    Returns:
        Confidence between 0.4 and 0.99 (4 decimals).

    Example:
        >>> score_confidence(record, photo_count=1, completeness=1.0)  # consistent, provider 0.75
        0.8275
    """
    completeness = max(0.0, min(1.0, completeness))

    blended = (
        CONFIDENCE_WEIGHTS["photos"] * photo_factor(photo_count)
        + CONFIDENCE_WEIGHTS["consistency"] * consistency_factor(record.measurements)
        + CONFIDENCE_WEIGHTS["completeness"] * completeness
        + CONFIDENCE_WEIGHTS["provider"] * record.confidence
    )

    return round(max(CONFIDENCE_FLOOR, min(CONFIDENCE_CEILING, blended)), 4)


__all__ = [
    "CONFIDENCE_WEIGHTS",
    "photo_factor",
    "consistency_issues",
    "consistency_factor",
    "score_confidence",
]
