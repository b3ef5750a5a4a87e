# unit_tests/test_agent_body_analysis.py
"""
Unit Tests for Body Analysis Orchestrator
=========================================
Run with: python -m pytest unit_tests/test_agent_body_analysis.py -v
"""

import json

import pytest

from agents.body_analysis_agent import (
    BODY_SCAN_CONFIG,
    CONTEXT_QUERY,
    BodyAnalysisOrchestrator,
    BodyAnalysisResult,
    load_body_scan_config,
)
from agents.errors import (
    BodyAnalysisError,
    ExtractionError,
    ProviderError,
    ScanInputError,
)
from conftest import FailingVisionProvider, FakeVisionProvider


class StaticContext:
    def __init__(self, text):
        self.text = text
        self.queries = []

    def get_context(self, query):
        self.queries.append(query)
        return self.text


class BrokenContext:
    def get_context(self, query):
        raise RuntimeError("knowledge base offline")


# =============================================================================
# ANALYZE
# =============================================================================

def test_analyze_single_photo(provider_text, photo):
    provider = FakeVisionProvider(provider_text)
    result = BodyAnalysisOrchestrator(provider).analyze([photo])

    assert isinstance(result, BodyAnalysisResult)
    assert result.photo_count == 1
    assert result.extraction_strategy == "whole_text"
    assert result.corrections == []
    assert result.signature.body_type_classification == "Balanced Build"

    assert len(provider.calls) == 1
    assert provider.calls[0]["images"] == [photo]
    assert "Analyze this single body photo" in provider.calls[0]["prompt"]


def test_confidence_is_overwritten(provider_text, photo):
    result = BodyAnalysisOrchestrator(FakeVisionProvider(provider_text)).analyze([photo])
    # Provider said 0.75, blended score replaces it
    assert result.record.confidence == pytest.approx(0.8275)
    assert result.to_scan_result()["confidence"] == pytest.approx(0.8275)


def test_scan_result_shape(provider_text, photo):
    scan = BodyAnalysisOrchestrator(FakeVisionProvider(provider_text)).analyze([photo]).to_scan_result()
    assert scan["measurements"]["chestCm"] == 102
    assert scan["bodySignature"]["uniqueId"].startswith("BalancedBuild-BF15.5-")
    assert "detailedMetrics" in scan["bodySignature"]


def test_three_photos_fenced_reply(provider_text, photo):
    reply = f"```json\n{provider_text}\n```"
    provider = FakeVisionProvider(reply)
    result = BodyAnalysisOrchestrator(provider).analyze([photo, photo, photo])

    assert result.photo_count == 3
    assert result.extraction_strategy == "tagged_fence"
    assert "Analyze ALL 3 body photos" in provider.calls[0]["prompt"]
    # 0.35*1.0 + 0.25 + 0.20 + 0.20*0.75
    assert result.record.confidence == pytest.approx(0.95)


def test_incomplete_reply_is_filled_and_scored_lower(raw_analysis, photo):
    del raw_analysis["measurements"]
    provider = FakeVisionProvider(json.dumps(raw_analysis))
    result = BodyAnalysisOrchestrator(provider).analyze([photo])

    assert result.record.measurements.waist_cm == 85
    assert "measurements.waistCm" in result.corrections
    # completeness 6/16; default measurements are consistent
    expected = 0.35 * 0.65 + 0.25 * 1.0 + 0.20 * (6 / 16) + 0.20 * 0.75
    assert result.record.confidence == pytest.approx(round(expected, 4))


def test_reference_context_in_prompt(provider_text, photo):
    provider = FakeVisionProvider(provider_text)
    context = StaticContext("Healthy body fat for men is 10-20%.")
    BodyAnalysisOrchestrator(provider, context_provider=context).analyze([photo])

    assert context.queries == [CONTEXT_QUERY]
    assert "Healthy body fat for men is 10-20%." in provider.calls[0]["prompt"]


def test_context_failure_is_tolerated(provider_text, photo):
    provider = FakeVisionProvider(provider_text)
    result = BodyAnalysisOrchestrator(provider, context_provider=BrokenContext()).analyze([photo])

    assert result.record.body_fat_percentage == 15.5
    assert "REFERENCE KNOWLEDGE" not in provider.calls[0]["prompt"]


# =============================================================================
# FAILURES
# =============================================================================

def test_provider_error_propagates(photo):
    error = ProviderError("quota exceeded")
    with pytest.raises(ProviderError) as exc_info:
        BodyAnalysisOrchestrator(FailingVisionProvider(error)).analyze([photo])
    assert exc_info.value is error
    assert exc_info.value.user_message.startswith("Failed to analyze body composition")


def test_unexpected_provider_exception_is_wrapped(photo):
    provider = FailingVisionProvider(ConnectionError("reset by peer"))
    with pytest.raises(ProviderError) as exc_info:
        BodyAnalysisOrchestrator(provider).analyze([photo])
    assert isinstance(exc_info.value.__cause__, ConnectionError)


def test_unparseable_reply(photo):
    provider = FakeVisionProvider("I'm sorry, I can't analyze people in photos.")
    with pytest.raises(ExtractionError) as exc_info:
        BodyAnalysisOrchestrator(provider).analyze([photo])
    assert isinstance(exc_info.value, BodyAnalysisError)
    assert exc_info.value.raw_sample.startswith("I'm sorry")


@pytest.mark.parametrize("images", [
    [],
    None,
    [b"a", b"b", b"c", b"d"],
    [b""],
    ["not-bytes"],
])
def test_bad_input_never_reaches_provider(images):
    provider = FailingVisionProvider()
    with pytest.raises(ScanInputError):
        BodyAnalysisOrchestrator(provider).analyze(images)
    assert provider.calls == 0


def test_max_photos_is_configurable(provider_text, photo):
    orchestrator = BodyAnalysisOrchestrator(FakeVisionProvider(provider_text), max_photos=1)
    with pytest.raises(ScanInputError) as exc_info:
        orchestrator.analyze([photo, photo])
    assert "Maximum 1 photos" in exc_info.value.user_message


def test_default_config():
    assert 1 <= BODY_SCAN_CONFIG["max_photos"] <= 3
    assert BODY_SCAN_CONFIG["timeout_s"] > 0


def test_config_from_environment(monkeypatch):
    monkeypatch.setenv("BODY_SCAN_MODEL", "gemini-env")
    monkeypatch.setenv("BODY_SCAN_TIMEOUT_S", "12.5")
    monkeypatch.setenv("BODY_SCAN_MAX_PHOTOS", "2")
    config = load_body_scan_config()
    assert config["model"] == "gemini-env"
    assert config["timeout_s"] == 12.5
    assert config["max_photos"] == 2


def test_max_photos_capped_at_three(monkeypatch, provider_text, photo):
    monkeypatch.setenv("BODY_SCAN_MAX_PHOTOS", "10")
    assert load_body_scan_config()["max_photos"] == 3

    orchestrator = BodyAnalysisOrchestrator(FakeVisionProvider(provider_text), max_photos=10)
    with pytest.raises(ScanInputError):
        orchestrator.analyze([photo] * 4)


@pytest.mark.parametrize("timeout, max_photos", [
    ("soon", "three"),
    ("-5", "0"),
    ("inf", "2.5"),
    ("", ""),
])
def test_malformed_config_falls_back(monkeypatch, timeout, max_photos):
    monkeypatch.setenv("BODY_SCAN_TIMEOUT_S", timeout)
    monkeypatch.setenv("BODY_SCAN_MAX_PHOTOS", max_photos)
    config = load_body_scan_config()
    assert config["timeout_s"] == 60.0
    assert config["max_photos"] == 3


# =============================================================================
# COMPARE
# =============================================================================

def test_compare_with_insights(raw_analysis):
    previous = dict(raw_analysis)
    current = json.loads(json.dumps(raw_analysis))
    current["bodyFatPercentage"] = 14.0
    current["measurements"]["waistCm"] = 80

    provider = FakeVisionProvider("Fat is down.\n\nWaist is smaller.\n\nKeep the deficit.")
    comparison = BodyAnalysisOrchestrator(provider).compare(previous, current)

    assert comparison.body_fat_change == -1.5
    assert comparison.measurement_changes["waist"] == -2.0
    assert comparison.progress_summary == "Fat is down.\n\nWaist is smaller."
    assert comparison.recommendations == "Keep the deficit."
    assert provider.calls[0]["images"] == []
    assert "CHANGES:" in provider.calls[0]["prompt"]


def test_compare_without_insights(raw_analysis):
    provider = FailingVisionProvider()
    comparison = BodyAnalysisOrchestrator(provider).compare(raw_analysis, raw_analysis, include_insights=False)

    assert comparison.body_fat_change == 0.0
    assert comparison.progress_summary == ""
    assert provider.calls == 0


def test_compare_revalidates_input(raw_analysis):
    provider = FakeVisionProvider("ok")
    comparison = BodyAnalysisOrchestrator(provider).compare({}, raw_analysis)
    # Empty scan falls back to defaults (20% body fat, 85cm waist)
    assert comparison.body_fat_change == -4.5
    assert comparison.measurement_changes["waist"] == -3.0


def test_compare_provider_failure(raw_analysis):
    with pytest.raises(ProviderError):
        BodyAnalysisOrchestrator(FailingVisionProvider()).compare(raw_analysis, raw_analysis)
