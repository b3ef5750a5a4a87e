# tools/vision_provider.py
"""
FitForge AI — Vision Provider Tool
==================================
Sends body photos to a vision-capable model and returns its raw text.

The provider is an opaque collaborator: non-deterministic, slow (seconds)
and fallible. Its reply is NOT trusted to match the requested JSON shape;
that is handled by the response extractor and schema validator.
"""

import logging
import os
from io import BytesIO
from typing import List, Optional, Protocol, Sequence

from dotenv import load_dotenv
from google import genai
from google.genai import types
from PIL import Image, UnidentifiedImageError

from agents.errors import ProviderError

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_TIMEOUT_S = 60.0
DEFAULT_MIME_TYPE = "image/jpeg"


# =============================================================================
# COLLABORATOR CONTRACTS
# =============================================================================

class VisionProvider(Protocol):
    def generate(self, prompt: str, images: Sequence[bytes]) -> str:
        """Return the model's raw text; raise ProviderError on failure."""
        ...


class ContextProvider(Protocol):
    def get_context(self, query: str) -> str:
        """Return reference knowledge (plain text) relevant to ``query``."""
        ...


# =============================================================================
# PROMPT
# =============================================================================

RESPONSE_SHAPE = """{
  "bodyFatPercentage": 15.5,
  "muscleMassLevel": "moderate",
  "physiqueRating": 7,
  "measurements": {
    "chestCm": 102,
    "waistCm": 82,
    "hipsCm": 98,
    "bicepCm": 36,
    "thighCm": 58,
    "shoulderWidthCm": 45,
    "neckCm": 38,
    "calfCm": 38,
    "forearmCm": 28,
    "heightCm": 175
  },
  "posture": {
    "quality": "good",
    "notes": "Slight forward shoulder rotation, good spinal alignment"
  },
  "fitnessLevel": "intermediate",
  "muscleDevelopment": {
    "chest": "moderate",
    "back": "good",
    "shoulders": "moderate",
    "arms": "moderate",
    "core": "good",
    "legs": "good"
  },
  "recommendations": {
    "focusAreas": ["chest", "shoulders"],
    "workoutSplit": "Push/Pull/Legs 5-6x per week",
    "nutritionTips": "Maintain a slight caloric surplus, aim for 1.6g protein per kg bodyweight",
    "progressGoals": "Gain 2-3kg lean muscle in 3 months"
  },
  "confidence": 0.75,
  "notes": "Based on visible muscle definition and body composition."
}"""


def build_body_analysis_prompt(photo_count: int, context: Optional[str] = None) -> str:
    """
    Build the body composition prompt for ``photo_count`` photos.

    Wording changes with the number of photos (single photo vs. several
    angles of the same person); the requested JSON shape does not.

    Args:
        photo_count: Number of photos attached to the request (1-3).
        context: Optional reference knowledge appended to the prompt.

    Returns:
        Prompt text.
    """
    if photo_count > 1:
        intro = (
            f"Analyze ALL {photo_count} body photos. They show different angles "
            "(front, side, back) of the same person."
        )
        instructions = (
            "- Look across ALL photos to get a comprehensive view\n"
            "- Use the different angles to improve accuracy, and avoid double counting "
            "the same feature seen from several angles\n"
            "- Front view: overall physique, symmetry\n"
            "- Side view: posture, core development\n"
            "- Back view: back muscles, posterior chain"
        )
    else:
        intro = "Analyze this single body photo and provide detailed body composition estimates."
        instructions = (
            "- Analyze visible muscle definition and body composition\n"
            "- Estimate based on visible physique markers"
        )

    prompt = f"""You are an expert fitness coach and body composition analyst. {intro}

IMPORTANT INSTRUCTIONS:
{instructions}

Based on the photo{'s' if photo_count > 1 else ''}, estimate:
1. Body composition: body fat %, muscle mass level (low/moderate/high), physique rating (1-10)
2. Measurements in cm: chest, waist, hips, bicep (relaxed), thigh, shoulder width, neck, calf, forearm, height
3. Posture quality (good/fair/needs improvement) with notes
4. Fitness level (beginner/intermediate/advanced) and development of each muscle group (low/moderate/good/excellent)
5. Focus areas, workout split, nutrition tips and 3-month progress goals

CRITICAL: Return your analysis as valid JSON in this EXACT format (no markdown, no code blocks):
{RESPONSE_SHAPE}"""

    if context:
        prompt += f"\n\nREFERENCE KNOWLEDGE (use it to ground your recommendations):\n{context.strip()}"

    return prompt


# =============================================================================
# GEMINI PROVIDER
# =============================================================================

def detect_mime_type(image: bytes) -> str:
    """Sniff the image format with Pillow; unknown formats are sent as JPEG."""
    try:
        with Image.open(BytesIO(image)) as img:
            image_format = (img.format or "").upper()
    except (UnidentifiedImageError, OSError):
        return DEFAULT_MIME_TYPE
    return Image.MIME.get(image_format, DEFAULT_MIME_TYPE)


class GeminiVisionProvider:
    """
    Vision provider backed by the Google GenAI SDK.

    Args:
        api_key: Gemini key; defaults to GOOGLE_API_KEY.
        model: Model name; defaults to BODY_SCAN_MODEL or gemini-2.0-flash.
        timeout_s: Request timeout in seconds; defaults to BODY_SCAN_TIMEOUT_S or 60.
        temperature: Sampling temperature.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_s: Optional[float] = None,
        temperature: float = 0.2,
    ):
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY")
        self.model = model or os.getenv("BODY_SCAN_MODEL", DEFAULT_MODEL)
        self.timeout_s = float(timeout_s or os.getenv("BODY_SCAN_TIMEOUT_S", DEFAULT_TIMEOUT_S))
        self.temperature = temperature
        self._client = None

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise ProviderError("GOOGLE_API_KEY not configured")
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout_s * 1000)),
            )
        return self._client

    def generate(self, prompt: str, images: Sequence[bytes]) -> str:
        """
        Send ``prompt`` and ``images`` to Gemini.

        Args:
            prompt: Instruction text.
            images: Raw image bytes (may be empty for text-only requests).

        Returns:
            The model's raw reply text.

        Raises:
            ProviderError: on missing key, network/quota/timeout failures or
            an empty reply.
        """
        contents: List[object] = [prompt]
        contents.extend(
            types.Part.from_bytes(data=image, mime_type=detect_mime_type(image))
            for image in images
        )

        config_options = {"temperature": self.temperature}
        if images:
            # Image analysis replies are JSON
            config_options["response_mime_type"] = "application/json"
        config = types.GenerateContentConfig(**config_options)

        client = self.client
        logger.info("Sending %d photo(s) to %s", len(images), self.model)
        try:
            response = client.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            logger.error("Vision provider call failed: %s", e)
            raise ProviderError(f"Vision provider call failed: {e}") from e

        text = response.text
        if not text:
            raise ProviderError("Vision provider returned an empty response")
        return text


__all__ = [
    "VisionProvider",
    "ContextProvider",
    "GeminiVisionProvider",
    "build_body_analysis_prompt",
    "detect_mime_type",
]
