"""Persisted record schemas (legacy V1 and current V2)"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from migrator.schemas.analysis import AnalysisBundle

CURRENT_SCHEMA = 2


class LegacyRecord(BaseModel):
    """Untagged V1 bag; every field is optional and unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    dreamText: Optional[Any] = None
    text: Optional[Any] = None
    timestamp: Optional[Any] = None
    ts: Optional[Any] = None
    analysis: Optional[Any] = None
    results: Optional[Any] = None

    @property
    def source_text(self) -> str:
        """First non-empty text payload, or an empty string"""
        for candidate in (self.dreamText, self.text):
            if isinstance(candidate, str) and candidate:
                return candidate
        return ""

    @property
    def legacy_analysis(self) -> Any:
        return self.analysis or self.results


class CurrentRecord(BaseModel):
    """Tagged V2 record as written back under the original key"""

    model_config = ConfigDict(populate_by_name=True)

    schema_version: Literal[2] = Field(default=2, alias="schema")
    id: str
    lang: Literal["tr", "en"]
    created_at: str = Field(alias="createdAt")
    dream_text: str = Field(alias="dreamText", min_length=1)
    analysis: AnalysisBundle
    version: str
    migrated: bool = True

    def to_json(self) -> str:
        # analysis may carry unvalidated modern fields
        return self.model_dump_json(by_alias=True, warnings=False)


class MigrationResult(BaseModel):
    migrated: int = 0
    failed: int = 0
    skipped: int = 0
    deferred: int = 0
    duration: float = 0.0  # milliseconds
