"""Legacy analysis → normalized AnalysisBundle conversion.

Legacy analysis payloads carry no version tag. Every value is first
classified into an explicit AnalysisShape, then converted by the matching
branch:

- MODERN: already a bundle (emotions + entities + sleep present); passed
  through with housekeeping fields refreshed. Fields the bundle model
  rejects are kept as stored.
- MISSING: nothing usable; the neutral empty bundle.
- FLAT: the old flat result (emotion list, theme list, confidenceScore);
  converted field by field.

Conversion never raises. Any failure degrades to the empty bundle so the
record itself can still be migrated.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import ValidationError

from migrator.core.config import settings
from migrator.core.logging import get_logger
from migrator.schemas.analysis import (
    AnalysisBundle,
    Continuity,
    EmotionIndex,
    EmotionLabel,
    EntityIndex,
    Plausibility,
    SleepStage,
    ThemeEntry,
)
from migrator.services.timestamps import utc_now_iso

log = get_logger("adapter")

MODERN_MARKERS = ("emotions", "entities", "sleep")
LEVELS = ("low", "medium", "high")
TONE_BY_VALENCE = {"pos": "positive", "neg": "negative"}


class AnalysisShape(str, Enum):
    MISSING = "missing"
    MODERN = "modern"
    FLAT = "flat"


def classify_analysis(value: Any) -> AnalysisShape:
    if not isinstance(value, dict):
        return AnalysisShape.MISSING
    if all(value.get(marker) for marker in MODERN_MARKERS):
        return AnalysisShape.MODERN
    return AnalysisShape.FLAT


def empty_bundle(source_text: str, lang: str, version: str = settings.ANALYSIS_VERSION) -> AnalysisBundle:
    return AnalysisBundle(
        source_text=source_text,
        language=lang,
        analysis_version=version,
        timestamp=utc_now_iso(),
    )


def theme_strength(score: float) -> str:
    if score >= 70:
        return "high"
    if score >= 40:
        return "medium"
    return "low"


def adapt_legacy_analysis(
    value: Any,
    source_text: str,
    lang: str,
    version: str = settings.ANALYSIS_VERSION,
) -> AnalysisBundle:
    shape = classify_analysis(value)
    try:
        if shape is AnalysisShape.MODERN:
            return _refresh_modern(value, source_text, lang, version)
        if shape is AnalysisShape.MISSING:
            return empty_bundle(source_text, lang, version)
        if shape is AnalysisShape.FLAT:
            return _convert_flat(value, source_text, lang, version)
        raise ValueError(f"Unhandled analysis shape: {shape}")
    except Exception as exc:  # noqa: BLE001
        log.warning(f"Failed to adapt {shape.value} analysis, using empty bundle: {exc}")
        return empty_bundle(source_text, lang, version)


# -----------------------------------------------------------------------------
# Branches
# -----------------------------------------------------------------------------


def _refresh_modern(value: Dict[str, Any], source_text: str, lang: str, version: str) -> AnalysisBundle:
    payload = {
        **value,
        "sourceText": source_text,
        "language": lang,
        "analysisVersion": version,
        "timestamp": value.get("timestamp") or utc_now_iso(),
    }
    try:
        return AnalysisBundle.model_validate(payload)
    except ValidationError as exc:
        # out-of-contract fields are kept as stored, not replaced by defaults
        log.warning(f"Modern analysis kept unvalidated ({exc.error_count()} invalid fields)")
        return AnalysisBundle.model_construct(**payload)


def _convert_flat(value: Dict[str, Any], source_text: str, lang: str, version: str) -> AnalysisBundle:
    emotions: List[Dict[str, Any]] = value.get("emotions") or []
    first = emotions[0] if emotions else {}
    confidence = (value.get("confidenceScore") or {}).get("score") or 50

    return AnalysisBundle(
        emotions=EmotionIndex(
            pos=_intensity_for(emotions, "pos"),
            neg=_intensity_for(emotions, "neg"),
            neu=_intensity_for(emotions, "neu"),
            labels=[_emotion_label(entry) for entry in emotions],
            confidence=confidence,
            tone=TONE_BY_VALENCE.get(first.get("valence"), "neutral"),
        ),
        entities=EntityIndex(),
        sleep=SleepStage(
            stage="unknown",
            confidence=50,
            emotional_intensity=first.get("intensity") or 50,
        ),
        plausibility=Plausibility(),
        continuity=Continuity(),
        themes=[_theme_entry(theme) for theme in value.get("themes") or []],
        source_text=source_text,
        language=lang,
        analysis_version=version,
        timestamp=utc_now_iso(),
        confidence=confidence,
    )


# -----------------------------------------------------------------------------
# Field helpers
# -----------------------------------------------------------------------------


def _intensity_for(emotions: List[Dict[str, Any]], valence: str) -> float:
    for entry in emotions:
        if entry.get("valence") == valence:
            return entry.get("intensity") or 0
    return 0


def _emotion_label(entry: Dict[str, Any]) -> EmotionLabel:
    intensity = entry.get("intensity") or 0
    return EmotionLabel(
        tag=entry.get("emotion") or entry.get("translatedName") or "unknown",
        score=intensity,
        intensity=intensity,
        valence=entry.get("valence") or "neu",
        arousal=entry.get("arousal") or 50,
    )


def _theme_entry(theme: Dict[str, Any]) -> ThemeEntry:
    score = theme.get("scorePct") or theme.get("score") or 0
    evidence = theme.get("evidence_level")
    return ThemeEntry(
        id=theme.get("theme") or theme.get("name") or "unknown",
        score_raw=score,
        score_norm=score,
        evidence_spans=[],
        strength=theme_strength(score),
        evidence_level=evidence if evidence in LEVELS else "medium",
    )
