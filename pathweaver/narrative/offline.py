"""
Offline narrative fallback.

Deterministic templates used when the remote service is unreachable. The same
(action, success level, chunk, seed) always produces the same text.
"""

import random
from typing import Optional

from ..core.dice import SuccessLevel
from ..core.models import Chunk

OUTCOME_PHRASES = {
    SuccessLevel.CRITICAL_FAILURE: [
        "Everything that could go wrong does.",
        "It goes badly, and you know it at once.",
    ],
    SuccessLevel.FAILURE: [
        "It doesn't work out.",
        "Your effort comes to nothing.",
    ],
    SuccessLevel.SUCCESS: [
        "It works.",
        "You manage it well enough.",
    ],
    SuccessLevel.GREAT_SUCCESS: [
        "It goes better than you hoped.",
        "You pull it off with real skill.",
    ],
    SuccessLevel.CRITICAL_SUCCESS: [
        "It could not have gone better.",
        "For a moment everything falls perfectly into place.",
    ],
}

LIGHT_WORDS = {"dark": ["dim", "gloomy"], "medium": ["shifting", "dappled"], "bright": ["bright", "sunlit"]}
MOISTURE_WORDS = {"high": ["damp", "heavy"], "medium": ["fresh", "clear"], "low": ["dry", "dusty"]}
TEMPERATURE_WORDS = {"cold": ["chilly", "bitter"], "mild": ["mild", "gentle"], "hot": ["hot", "stifling"]}

CONCLUSIONS = [
    "You steady yourself for whatever comes next.",
    "You take a breath and press on.",
]

SENTENCES_BY_LENGTH = {"short": 1, "medium": 2, "long": 3}


def _band(value: int, low: int, high: int, names: tuple) -> str:
    if value < low:
        return names[0]
    if value > high:
        return names[2]
    return names[1]


def describe_surroundings(chunk: Chunk, rng: random.Random) -> str:
    light = rng.choice(LIGHT_WORDS[_band(chunk.light_level, -3, 5, ("dark", "medium", "bright"))])
    air = rng.choice(MOISTURE_WORDS[_band(chunk.moisture, 3, 8, ("low", "medium", "high"))])
    temp = rng.choice(TEMPERATURE_WORDS[_band(chunk.temperature, 5, 28, ("cold", "mild", "hot"))])
    return f"The {chunk.terrain} around you is {light}, the air {air} and {temp}."


def offline_narrative(action: str, level: Optional[SuccessLevel] = None,
                      chunk: Optional[Chunk] = None, length: str = "medium",
                      seed: Optional[int] = None) -> str:
    """Compose a narrative paragraph without the remote service."""
    rng = random.Random(f"{seed}:{action}")
    sentences = [f"You {action}."]
    if level is not None:
        sentences[0] = f"You {action}. {rng.choice(OUTCOME_PHRASES[level])}"

    count = SENTENCES_BY_LENGTH.get(length, 2)
    if count >= 2 and chunk is not None:
        sentences.append(describe_surroundings(chunk, rng))
    if count >= 3:
        sentences.append(rng.choice(CONCLUSIONS))
    return " ".join(sentences)


def offline_quest_hint(quest_title: str) -> dict:
    return {
        "narrative": f"You think back over what you know about {quest_title}.",
        "hint": "Keep exploring; the land itself may point the way.",
    }


def offline_fusion(item_names: list) -> dict:
    """Fusion needs the remote service; offline the items simply refuse to combine."""
    return {
        "narrative": f"You try to combine {', '.join(item_names)}, but nothing happens.",
        "result_item": None,
    }
