"""
Pure helpers turning pipeline output into presentation hints.

Nothing here holds state: renderers call :func:`describe` with the latest
label and decide themselves how to theme the page.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

import numpy as np

from .core.classification import Label
from .core.models import Sample

__all__ = [
    "EMOTION_COLORS",
    "DEFAULT_EMOTION_COLOR",
    "ENCOURAGING_MESSAGES",
    "Presentation",
    "describe",
    "emotion_color",
    "message_category",
    "EncouragementPicker",
]

DEFAULT_EMOTION_COLOR = "#4caf50"

EMOTION_COLORS: Mapping[str, str] = {
    "sad": "#ff4444",
    "depression": "#ff4444",
    "depressed": "#ff4444",
    "happy": "#ffeb3b",
    "neutral": "#4caf50",
    "focus": "#4caf50",
    "focused": "#4caf50",
    "anxious": "#9c27b0",
    "anxiety": "#9c27b0",
    "angry": "#ff6b6b",
    "surprised": "#ffa726",
    "disgusted": "#8d6e63",
    "fearful": "#9c27b0",
}

ENCOURAGING_MESSAGES: Mapping[str, Sequence[str]] = {
    "low_engagement": (
        "Let's energize! You can do this!",
        "Time to shine! Show what you're made of!",
        "Let's turn this around together!",
        "Your potential is unlimited!",
    ),
    "sad": (
        "I'm here for you! You're doing amazing.",
        "Every small step counts! Keep going!",
        "You're stronger than you think!",
        "Tomorrow is a new day full of possibilities!",
    ),
    "happy": (
        "Amazing energy! Keep it up!",
        "You're crushing it! So proud!",
        "Your smile is contagious! Love it!",
        "That's the spirit! Unstoppable!",
    ),
    "neutral": (
        "Steady and focused! Great work!",
        "You're in the zone! Keep flowing!",
        "Consistent effort = success!",
        "Looking good! Stay on track!",
    ),
    "engaged": (
        "Wow! Your focus is incredible!",
        "This is what peak performance looks like!",
        "You're absolutely nailing this!",
        "Keep this momentum going!",
    ),
}


@dataclass(frozen=True)
class Presentation:
    label: str
    color: str
    emotion: Optional[str] = None
    emotion_color: Optional[str] = None


def emotion_color(emotion: str) -> str:
    return EMOTION_COLORS.get(emotion.strip().lower(), DEFAULT_EMOTION_COLOR)


def describe(label: Label, emotion: Optional[str] = None) -> Presentation:
    if emotion is None:
        return Presentation(label=label.name, color=label.color)
    return Presentation(
        label=label.name,
        color=label.color,
        emotion=emotion.strip().lower(),
        emotion_color=emotion_color(emotion),
    )


def message_category(
    emotion: Optional[str],
    engagement: float,
    attention: float,
    voice_emotion: Optional[str] = None,
) -> str:
    """Pick an encouragement category; checks run in priority order."""
    facial = (emotion or "").strip().lower()
    voice = (voice_emotion or "").strip().lower()
    if engagement < 60 or attention < 70:
        return "low_engagement"
    if facial == "sad" or voice == "calm":
        return "sad"
    if facial == "focused" and engagement > 80:
        return "engaged"
    if facial == "happy" or voice == "excited":
        return "happy"
    if facial == "engaged":
        return "engaged"
    return "neutral"


class EncouragementPicker:
    """
    Sample consumer that keeps the latest encouragement message.

    Subscribe it to a :class:`~mindpulse.core.controller.PipelineController`;
    a new message is only chosen when the category changes.
    """

    def __init__(self, seed: Optional[int] = None, messages: Mapping[str, Sequence[str]] = ENCOURAGING_MESSAGES) -> None:
        self._rng = np.random.default_rng(seed)
        self._messages: Dict[str, Sequence[str]] = dict(messages)
        self.category: Optional[str] = None
        self.message: Optional[str] = None

    def pick(self, category: str) -> str:
        options = self._messages.get(category) or self._messages["neutral"]
        return options[int(self._rng.integers(len(options)))]

    def __call__(self, sample: Sample, snapshot: Mapping[str, Sequence[float]], label: Label) -> None:
        category = message_category(
            sample.meta.get("emotion"),
            sample.get("engagement", 0.0),
            sample.get("attention", 0.0),
            sample.meta.get("voice_emotion"),
        )
        if category != self.category:
            self.category = category
            self.message = self.pick(category)
