# tools/progress_tracker.py
"""
FitForge AI — Body Scan Progress Tracker
========================================
Compares two validated body scans: body fat change, muscle mass level and
the change of the key circumferences. The narrative part (summary and
recommendations) is written by the vision provider and split here.
"""

from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from tools.schema_validator import BodyAnalysisRecord

# Measurements reported in a comparison (label -> attribute)
TRACKED_MEASUREMENTS = {
    "chest": "chest_cm",
    "waist": "waist_cm",
    "hips": "hips_cm",
    "bicep": "bicep_cm",
    "thigh": "thigh_cm",
}

SUMMARY_PARAGRAPHS = 2


class ScanComparison(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    body_fat_change: float = Field(alias="bodyFatChange")
    muscle_mass_change: str = Field(alias="muscleMassChange")
    measurement_changes: Dict[str, float] = Field(alias="measurementChanges")
    progress_summary: str = Field("", alias="progressSummary")
    recommendations: str = ""

    def to_wire(self) -> Dict[str, object]:
        return self.model_dump(by_alias=True)


def _signed(value: float) -> str:
    return f"{'+' if value > 0 else ''}{value:.1f}"


def compare_scans(previous: BodyAnalysisRecord, current: BodyAnalysisRecord) -> ScanComparison:
    """
    Compute the deterministic part of a scan comparison.

    Args:
        previous: Earlier validated scan.
        current: Later validated scan.

    Returns:
        ``ScanComparison`` with bodyFatChange (current - previous, 1 decimal),
        muscleMassChange (the current level) and measurementChanges in cm.
        progressSummary / recommendations are left empty.
    """
    changes = {
        label: round(getattr(current.measurements, attr) - getattr(previous.measurements, attr), 1)
        for label, attr in TRACKED_MEASUREMENTS.items()
    }

    return ScanComparison(
        body_fat_change=round(current.body_fat_percentage - previous.body_fat_percentage, 1),
        muscle_mass_change=current.muscle_mass_level,
        measurement_changes=changes,
    )


def build_comparison_prompt(
    previous: BodyAnalysisRecord,
    current: BodyAnalysisRecord,
    comparison: ScanComparison,
) -> str:
    """Prompt asking the coach model to narrate the progress between two scans."""
    return f"""You are a supportive fitness coach analyzing body composition progress.
Compare these two body scans and provide progress insights.

PREVIOUS SCAN:
- Body Fat: {previous.body_fat_percentage}%
- Measurements: {previous.measurements.model_dump_json(by_alias=True)}

CURRENT SCAN:
- Body Fat: {current.body_fat_percentage}%
- Measurements: {current.measurements.model_dump_json(by_alias=True)}

CHANGES:
- Body Fat: {_signed(comparison.body_fat_change)}%
- Measurements (cm): {comparison.measurement_changes}

Provide:
1. Progress summary (2-3 sentences)
2. What's working well
3. Areas needing adjustment
4. Next steps for continued progress

Separate paragraphs with a blank line. Keep it motivating and actionable (max 300 words)."""


def split_insights(text: str) -> Tuple[str, str]:
    """First two paragraphs are the summary, the rest are recommendations."""
    paragraphs: List[str] = [p.strip() for p in (text or "").split("\n\n") if p.strip()]
    summary = "\n\n".join(paragraphs[:SUMMARY_PARAGRAPHS])
    recommendations = "\n\n".join(paragraphs[SUMMARY_PARAGRAPHS:])
    return summary, recommendations


__all__ = [
    "ScanComparison",
    "TRACKED_MEASUREMENTS",
    "compare_scans",
    "build_comparison_prompt",
    "split_insights",
]
