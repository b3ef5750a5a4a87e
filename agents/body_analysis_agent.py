# agents/body_analysis_agent.py
"""
FitForge AI — Body Analysis Orchestrator
========================================
Runs one body scan end to end:

  REQUESTING -> EXTRACTING -> VALIDATING -> SCORING -> SIGNING_OFF -> DONE

Only the provider call and the extraction can fail (-> FAILED). Both surface
as a ``BodyAnalysisError`` asking for clearer photos; no partial result is
ever returned. Collaborators (vision provider, knowledge-base context) are
injected, so the orchestrator holds no global clients.
"""

import logging
import os
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from agents.errors import ExtractionError, ProviderError, ScanInputError
from tools.body_signature import BodySignature, compute_body_signature
from tools.confidence_scorer import score_confidence
from tools.progress_tracker import (
    ScanComparison,
    build_comparison_prompt,
    compare_scans,
    split_insights,
)
from tools.response_extractor import run_extraction_cascade
from tools.schema_validator import (
    BodyAnalysisRecord,
    measure_completeness,
    sanitize_body_analysis,
    validate_body_analysis,
)
from tools.vision_provider import (
    ContextProvider,
    GeminiVisionProvider,
    VisionProvider,
    build_body_analysis_prompt,
)

logger = logging.getLogger(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================
MAX_PHOTOS_LIMIT = 3  # front, side, back
DEFAULT_TIMEOUT_S = 60.0


def _env_number(name: str, default: float, cast=float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        logger.warning("Ignoring malformed %s=%r, using %s", name, raw, default)
        return default
    if not 0 < value < float("inf"):
        logger.warning("Ignoring out-of-range %s=%r, using %s", name, raw, default)
        return default
    return value


def load_body_scan_config() -> Dict[str, Any]:
    """Read the body scan settings from the environment (bad values fall back to defaults)."""
    max_photos = _env_number("BODY_SCAN_MAX_PHOTOS", MAX_PHOTOS_LIMIT, int)
    return {
        "app_name": "fitforge_body_scan",
        "model": os.getenv("BODY_SCAN_MODEL") or "gemini-2.0-flash",
        "timeout_s": _env_number("BODY_SCAN_TIMEOUT_S", DEFAULT_TIMEOUT_S),
        "max_photos": min(max_photos, MAX_PHOTOS_LIMIT),
    }


BODY_SCAN_CONFIG = load_body_scan_config()

CONTEXT_QUERY = "body composition analysis, physique assessment and training recommendations"


class AnalysisStage(Enum):
    REQUESTING = "requesting"
    EXTRACTING = "extracting"
    VALIDATING = "validating"
    SCORING = "scoring"
    SIGNING_OFF = "signing_off"
    DONE = "done"
    FAILED = "failed"


class BodyAnalysisResult(BaseModel):
    """Validated analysis with its signature, as returned to the caller."""
    model_config = ConfigDict(frozen=True)

    record: BodyAnalysisRecord
    signature: BodySignature
    photo_count: int
    extraction_strategy: str
    corrections: List[str] = Field(default_factory=list)
    analyzed_at: str = Field(default_factory=lambda: datetime.now().isoformat())

    def to_scan_result(self) -> Dict[str, Any]:
        """Record fields (camelCase) plus ``bodySignature``."""
        scan = self.record.to_wire()
        scan["bodySignature"] = self.signature.to_wire()
        return scan


# =============================================================================
# ORCHESTRATOR
# =============================================================================
class BodyAnalysisOrchestrator:
    """
    Sequences provider -> extractor -> validator -> scorer -> signature.

    Args:
        provider: Vision provider (``generate(prompt, images) -> str``).
        context_provider: Optional knowledge-base text source for the prompt.
        max_photos: Maximum number of photos per scan.
    """

    def __init__(
        self,
        provider: VisionProvider,
        context_provider: Optional[ContextProvider] = None,
        max_photos: int = 3,
    ):
        self.provider = provider
        self.context_provider = context_provider
        self.max_photos = min(max_photos, MAX_PHOTOS_LIMIT)

    def _enter(self, stage: AnalysisStage) -> AnalysisStage:
        logger.debug("Body analysis stage: %s", stage.value)
        return stage

    def _check_images(self, images: Sequence[bytes]) -> List[bytes]:
        if images is None or len(images) == 0:
            raise ScanInputError("At least one photo is required")
        if len(images) > self.max_photos:
            raise ScanInputError(f"Maximum {self.max_photos} photos allowed (front, side, back)")
        checked = []
        for image in images:
            if not isinstance(image, (bytes, bytearray)) or not image:
                raise ScanInputError("Photos must be non-empty image data")
            checked.append(bytes(image))
        return checked

    def _reference_context(self) -> Optional[str]:
        if self.context_provider is None:
            return None
        try:
            return self.context_provider.get_context(CONTEXT_QUERY)
        except Exception as e:
            logger.warning("Knowledge base context unavailable, continuing without it: %s", e)
            return None

    def _call_provider(self, prompt: str, images: Sequence[bytes]) -> str:
        try:
            return self.provider.generate(prompt, images)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Vision provider call failed: {e}") from e

    def analyze(self, images: Sequence[bytes]) -> BodyAnalysisResult:
        """
        Analyze 1-3 body photos.

        Args:
            images: Raw image bytes (front, side, back).

        Returns:
            ``BodyAnalysisResult`` with the validated record (confidence
            overwritten by the blended score) and its Body Signature.

        Raises:
            ScanInputError: wrong number of photos or empty payloads.
            ProviderError: the vision provider call failed.
            ExtractionError: no JSON could be recovered from the reply.
        """
        images = self._check_images(images)
        photo_count = len(images)

        stage = self._enter(AnalysisStage.REQUESTING)
        try:
            prompt = build_body_analysis_prompt(photo_count, self._reference_context())
            raw_text = self._call_provider(prompt, images)

            stage = self._enter(AnalysisStage.EXTRACTING)
            extracted, strategy = run_extraction_cascade(raw_text)
        except (ProviderError, ExtractionError) as e:
            logger.error("Body analysis failed while %s: %s", stage.value, e)
            self._enter(AnalysisStage.FAILED)
            raise

        # Measured before defaults are filled in
        completeness = measure_completeness(extracted)

        self._enter(AnalysisStage.VALIDATING)
        record, corrections = sanitize_body_analysis(extracted)

        self._enter(AnalysisStage.SCORING)
        confidence = score_confidence(record, photo_count, completeness)
        record = record.model_copy(update={"confidence": confidence})

        self._enter(AnalysisStage.SIGNING_OFF)
        signature = compute_body_signature(record)

        self._enter(AnalysisStage.DONE)
        logger.info(
            "✅ Body analysis complete (%d photo(s)): %s%% BF, %s level, signature %s, confidence %.2f",
            photo_count, record.body_fat_percentage, record.fitness_level, signature.unique_id, confidence,
        )

        return BodyAnalysisResult(
            record=record,
            signature=signature,
            photo_count=photo_count,
            extraction_strategy=strategy,
            corrections=corrections,
        )

    def compare(self, previous: Any, current: Any, include_insights: bool = True) -> ScanComparison:
        """
        Compare two scans for progress tracking.

        Both scans are re-validated since they come from the caller.

        Args:
            previous: Earlier scan (wire dict or ``BodyAnalysisRecord``).
            current: Later scan.
            include_insights: Ask the provider for a progress narrative.

        Returns:
            ``ScanComparison``; summary/recommendations empty when
            ``include_insights`` is False.

        Raises:
            ProviderError: the narrative request failed.
        """
        previous_record = validate_body_analysis(previous)
        current_record = validate_body_analysis(current)
        comparison = compare_scans(previous_record, current_record)

        if not include_insights:
            return comparison

        prompt = build_comparison_prompt(previous_record, current_record, comparison)
        summary, recommendations = split_insights(self._call_provider(prompt, []))
        logger.info("📊 Scan comparison complete: %+.1f%% body fat change", comparison.body_fat_change)

        return comparison.model_copy(update={"progress_summary": summary, "recommendations": recommendations})


def create_body_analysis_orchestrator(
    context_provider: Optional[ContextProvider] = None,
) -> BodyAnalysisOrchestrator:
    """Build an orchestrator with the Gemini provider from ``BODY_SCAN_CONFIG``."""
    provider = GeminiVisionProvider(
        model=BODY_SCAN_CONFIG["model"],
        timeout_s=BODY_SCAN_CONFIG["timeout_s"],
    )
    return BodyAnalysisOrchestrator(
        provider,
        context_provider=context_provider,
        max_photos=BODY_SCAN_CONFIG["max_photos"],
    )
