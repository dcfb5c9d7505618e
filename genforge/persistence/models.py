"""
Persistence Data Models.

Copyright (c) 2025 GenForge
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from genforge.intent import Complexity
from genforge.utils import utc_now


class SpeedPreference(str, Enum):
    """How the user trades generation speed against thoroughness."""
    FAST = "fast"
    BALANCED = "balanced"
    THOROUGH = "thorough"


class GenerationOutcome(BaseModel):
    """Outcome of one generation attempt."""
    model_config = ConfigDict(frozen=True)

    success: bool
    score: Optional[float] = None
    duration_ms: int = 0
    artifact_count: int = 0


class HistoryEntry(BaseModel):
    """Append-only record of a past request."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utc_now)
    request_summary: str = ""
    analysis: Dict[str, Any] = Field(default_factory=dict)
    outcome: GenerationOutcome


class SessionPreferences(BaseModel):
    """Preferences derived from a user's history."""
    favorite_technologies: List[str] = Field(default_factory=list)
    favorite_styles: List[str] = Field(default_factory=lambda: ["tailwindcss"])
    complexity_preference: Complexity = Complexity.MEDIUM
    domain_expertise: Dict[str, float] = Field(default_factory=dict)
    frequent_features: Dict[str, int] = Field(default_factory=dict)
    quality_threshold: float = 70.0
    speed_preference: SpeedPreference = SpeedPreference.BALANCED

    def add_technology(self, tech: str) -> None:
        """Add a favourite technology, keeping set semantics."""
        if tech not in self.favorite_technologies:
            self.favorite_technologies.append(tech)


class Session(BaseModel):
    """Per-user generation session."""
    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: Optional[str] = None
    started_at: datetime = Field(default_factory=utc_now)
    last_activity_at: datetime = Field(default_factory=utc_now)
    generation_count: int = 0
    preferences: SessionPreferences = Field(default_factory=SessionPreferences)
    history: List[HistoryEntry] = Field(default_factory=list)

    def recent(self, count: int) -> List[HistoryEntry]:
        """Return the last ``count`` history entries, oldest first."""
        if count <= 0:
            return []
        return self.history[-count:]

    @property
    def success_rate(self) -> Optional[float]:
        """Share of successful generations, or None with no history."""
        if not self.history:
            return None
        return sum(1 for entry in self.history if entry.outcome.success) / len(self.history)
