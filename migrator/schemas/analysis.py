"""Normalized analysis bundle (current schema)"""

from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


Percent = Annotated[float, AfterValidator(clamp_percent)]
Level = Literal["low", "medium", "high"]


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class EmotionLabel(CamelModel):
    tag: str = "unknown"
    score: Percent = 0
    intensity: Percent = 0
    valence: Literal["pos", "neg", "neu"] = "neu"
    arousal: Percent = 50


class EmotionIndex(CamelModel):
    pos: Percent = 0
    neg: Percent = 0
    neu: Percent = 100
    labels: list[EmotionLabel] = Field(default_factory=list)
    confidence: Percent = 0
    tone: Literal["positive", "negative", "neutral"] = "neutral"


class EntityIndex(CamelModel):
    people: list[Any] = Field(default_factory=list)
    animals: list[Any] = Field(default_factory=list)
    places: list[Any] = Field(default_factory=list)
    objects: list[Any] = Field(default_factory=list)
    events: list[Any] = Field(default_factory=list)


class SleepStage(CamelModel):
    stage: Literal["REM", "NREM", "unknown"] = "unknown"
    confidence: Percent = 0
    vividness: Percent = 50
    emotional_intensity: Percent = 50
    bizarreness_score: Percent = 50
    narrative_coherence: Percent = 50


class Plausibility(CamelModel):
    logical: Percent = 50
    physical: Percent = 50
    social: Percent = 50
    bizarreness: Percent = 50
    overall: Percent = 50


class Continuity(CamelModel):
    thematic: Percent = 0
    emotional: Percent = 0
    social: Percent = 0
    cognitive: Percent = 0
    overall: Percent = 0
    has_day_data: bool = False


class ThemeEntry(CamelModel):
    id: str = "unknown"
    score_raw: float = 0
    score_norm: Percent = 0
    evidence_spans: list[Any] = Field(default_factory=list)
    strength: Level = "low"
    evidence_level: Level = "medium"


class AnalysisBundle(CamelModel):
    """Fixed-shape aggregate; every sub-object falls back to its neutral default."""

    emotions: EmotionIndex = Field(default_factory=EmotionIndex)
    entities: EntityIndex = Field(default_factory=EntityIndex)
    sleep: SleepStage = Field(default_factory=SleepStage)
    plausibility: Plausibility = Field(default_factory=Plausibility)
    continuity: Continuity = Field(default_factory=Continuity)
    themes: list[ThemeEntry] = Field(default_factory=list)
    source_text: str
    language: str
    analysis_version: str
    timestamp: str
    confidence: Percent = 0

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", warnings=False)
