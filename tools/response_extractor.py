# tools/response_extractor.py
"""
FitForge AI — Response Extractor Tool
=====================================
Recovers a JSON object from unreliable vision-model output.

Models do not reliably honor "return only JSON" instructions, so the text
is run through an ordered cascade of strategies, from the most precise to
the most permissive:

  1. whole_text      - the whole reply is JSON
  2. tagged_fence    - ```json ... ``` block
  3. untagged_fence  - ``` ... ``` block (no tag or another tag)
  4. brace_span      - first "{" to last "}"
  5. repair          - textual fixes for near-miss JSON, then parse

The first strategy that yields a JSON object wins. This is a pure text
processing tool (no AI required).
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from agents.errors import ExtractionError

logger = logging.getLogger(__name__)

RAW_SAMPLE_LIMIT = 200

# =============================================================================
# PATTERNS
# =============================================================================

TAGGED_FENCE_PATTERN = re.compile(r"```[ \t]*json[ \t]*\r?\n?(.*?)```", re.DOTALL | re.IGNORECASE)
UNTAGGED_FENCE_PATTERN = re.compile(r"```(?:[ \t]*[\w-]+[ \t]*\r?\n|[ \t]*\r?\n?)(.*?)```", re.DOTALL)

# Prose models like to put in front of the payload
LEAD_IN_PATTERNS = [
    re.compile(r"^\s*here(?:'s| is)\s+(?:the|your|my)?\s*(?:json|analysis|result|response|output)[^:\n{]*:\s*", re.IGNORECASE),
    re.compile(r"^\s*sure[!,.]?[^\n{]*\n", re.IGNORECASE),
    re.compile(r"^\s*json\s*:?\s*", re.IGNORECASE),
]

FENCE_MARKER_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)
TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")
SINGLE_QUOTED_TOKEN_PATTERN = re.compile(r"([{\[,:]\s*)'([^'\n]*)'(?=\s*[,:}\]])")
BARE_KEY_PATTERN = re.compile(r"([{,]\s*)([A-Za-z_][\w]*)\s*:")


# =============================================================================
# TAGGED RESULTS
# =============================================================================

class StrategyOutcome(NamedTuple):
    """Result of one extraction attempt: either a record or a failure reason."""
    ok: bool
    value: Optional[Dict[str, Any]] = None
    error: str = ""


def _success(value: Dict[str, Any]) -> StrategyOutcome:
    return StrategyOutcome(ok=True, value=value)


def _failure(reason: str) -> StrategyOutcome:
    return StrategyOutcome(ok=False, error=reason)


def _parse_object(candidate: str) -> StrategyOutcome:
    """Parse ``candidate`` and accept it only if it is a JSON object."""
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        return _failure(f"invalid JSON ({e.msg} at char {e.pos})")
    if not isinstance(parsed, dict):
        return _failure(f"parsed {type(parsed).__name__}, expected object")
    return _success(parsed)


def _brace_span(text: str) -> Optional[str]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start:end + 1]


# =============================================================================
# STRATEGIES
# =============================================================================

def parse_whole_text(text: str) -> StrategyOutcome:
    stripped = text.strip()
    if not stripped:
        return _failure("empty text")
    return _parse_object(stripped)


def parse_tagged_fence(text: str) -> StrategyOutcome:
    match = TAGGED_FENCE_PATTERN.search(text)
    if not match:
        return _failure("no ```json fence")
    return _parse_object(match.group(1).strip())


def parse_untagged_fence(text: str) -> StrategyOutcome:
    match = UNTAGGED_FENCE_PATTERN.search(text)
    if not match:
        return _failure("no fenced block")
    return _parse_object(match.group(1).strip())


def parse_brace_span(text: str) -> StrategyOutcome:
    span = _brace_span(text)
    if span is None:
        return _failure("no brace span")
    return _parse_object(span)


def repair_json_text(text: str) -> str:
    """
    Apply best-effort textual repairs to near-miss JSON.

    Steps, in order:
    1. Start from the brace span (whole text if there is none)
    2. Strip lead-in phrases ("Here is the JSON:") and fence markers
    3. Truncate anything after the last closing brace
    4. Remove trailing commas before } or ]
    5. Convert single-quoted keys/values to double quotes
    6. Quote bare identifier keys

    Args:
        text: Raw model output.

    Returns:
        The repaired candidate string (not guaranteed to be valid JSON).

    Example:
        >>> repair_json_text("Here is the JSON: {bodyFatPercentage: 15.5,}")
        '{"bodyFatPercentage": 15.5}'
    """
    candidate = _brace_span(text) or text

    for pattern in LEAD_IN_PATTERNS:
        candidate = pattern.sub("", candidate, count=1)
    candidate = FENCE_MARKER_PATTERN.sub("", candidate)

    last_brace = candidate.rfind("}")
    if last_brace != -1:
        candidate = candidate[:last_brace + 1]

    candidate = TRAILING_COMMA_PATTERN.sub(r"\1", candidate)
    candidate = SINGLE_QUOTED_TOKEN_PATTERN.sub(lambda m: f'{m.group(1)}"{m.group(2)}"', candidate)
    # Lossy for colons inside string values; only meant for near-miss output
    candidate = BARE_KEY_PATTERN.sub(r'\1"\2":', candidate)

    return candidate.strip()


def parse_repaired(text: str) -> StrategyOutcome:
    repaired = repair_json_text(text)
    if not repaired:
        return _failure("nothing left after repair")
    return _parse_object(repaired)


# Ordered from safest to most permissive
EXTRACTION_STRATEGIES: List[Tuple[str, Callable[[str], StrategyOutcome]]] = [
    ("whole_text", parse_whole_text),
    ("tagged_fence", parse_tagged_fence),
    ("untagged_fence", parse_untagged_fence),
    ("brace_span", parse_brace_span),
    ("repair", parse_repaired),
]


# =============================================================================
# MAIN TOOL
# =============================================================================

def run_extraction_cascade(raw_text: Any) -> Tuple[Dict[str, Any], str]:
    """
    Run the extraction strategies in order and stop at the first success.

    Args:
        raw_text: Text returned by the vision provider.

    Returns:
        (record, strategy_name) - the parsed JSON object and the name of the
        strategy that produced it.

    Raises:
        ExtractionError: when every strategy fails. Carries a truncated
        sample of the text and the failure reason of each strategy.
    """
    if not isinstance(raw_text, str):
        failures = [(name, f"expected str, got {type(raw_text).__name__}") for name, _ in EXTRACTION_STRATEGIES]
        raise ExtractionError(repr(raw_text)[:RAW_SAMPLE_LIMIT], failures)

    failures: List[Tuple[str, str]] = []
    for name, strategy in EXTRACTION_STRATEGIES:
        outcome = strategy(raw_text)
        if outcome.ok:
            logger.debug("Extracted provider JSON with strategy '%s'", name)
            return outcome.value, name
        failures.append((name, outcome.error))

    logger.warning("All %d extraction strategies failed", len(failures))
    raise ExtractionError(raw_text[:RAW_SAMPLE_LIMIT], failures)


def extract_body_record(raw_text: Any) -> Dict[str, Any]:
    """Return the JSON object recovered from ``raw_text`` (see ``run_extraction_cascade``)."""
    record, _ = run_extraction_cascade(raw_text)
    return record


__all__ = [
    "StrategyOutcome",
    "EXTRACTION_STRATEGIES",
    "repair_json_text",
    "run_extraction_cascade",
    "extract_body_record",
]
