import copy
import json
import sys
from pathlib import Path

import pytest

# Add root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from agents.errors import ProviderError

SAMPLE_ANALYSIS = {
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
        "heightCm": 175,
    },
    "posture": {"quality": "good", "notes": "Slight forward shoulder rotation"},
    "fitnessLevel": "intermediate",
    "muscleDevelopment": {
        "chest": "moderate",
        "back": "good",
        "shoulders": "moderate",
        "arms": "moderate",
        "core": "good",
        "legs": "good",
    },
    "recommendations": {
        "focusAreas": ["chest", "shoulders"],
        "workoutSplit": "Push/Pull/Legs 5-6x per week",
        "nutritionTips": "Aim for 1.6g protein per kg bodyweight",
        "progressGoals": "Gain 2-3kg lean muscle in 3 months",
    },
    "confidence": 0.75,
    "notes": "Based on visible muscle definition.",
}


class FakeVisionProvider:
    """Returns canned replies and records every call."""
    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def generate(self, prompt, images):
        self.calls.append({"prompt": prompt, "images": list(images)})
        return self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]


class FailingVisionProvider:
    def __init__(self, error=None):
        self.error = error or ProviderError("quota exceeded")
        self.calls = 0

    def generate(self, prompt, images):
        self.calls += 1
        raise self.error


@pytest.fixture
def raw_analysis():
    return copy.deepcopy(SAMPLE_ANALYSIS)


@pytest.fixture
def provider_text(raw_analysis):
    return json.dumps(raw_analysis)


@pytest.fixture
def photo():
    return b"\xff\xd8\xff\xe0fake-jpeg-bytes"
