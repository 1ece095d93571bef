"""
Input validation schemas using Pydantic v2
Validates attachments, evaluation requests and store snapshots
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .types import STAGES

logger = logging.getLogger(__name__)

ALLOWED_FILE_TYPES = {"music", "audio", "photo", "video", "image", "pdf"}


class InputSanitizer:
    """Utility class for identifier and field sanitization"""

    @staticmethod
    def sanitize_string(value: Any, max_length: int = 255) -> str:
        """Strip whitespace and null bytes, cap length"""
        if not isinstance(value, str):
            value = str(value)
        value = value.strip()
        value = value[:max_length]
        return value.replace("\0", "")

    @staticmethod
    def sanitize_entry_id(value: Any) -> str:
        entry_id = InputSanitizer.sanitize_string(value, 64)
        if not entry_id:
            raise ValueError("entry_id cannot be empty")
        return entry_id

    @staticmethod
    def normalize_stage_name(value: Any) -> str:
        """Map a stage name to its canonical form or raise ValueError"""
        if not isinstance(value, str):
            raise ValueError(f"stage must be a string, got {type(value).__name__}")
        stage = value.strip().lower()
        if stage not in STAGES:
            raise ValueError(f"stage must be one of {STAGES}, got {value}")
        return stage


class ValidatedEntryFile(BaseModel):
    """Attachment metadata as accepted by the file store adapters"""

    entry_id: str = Field(..., min_length=1, max_length=64)
    file_type: str = Field(..., description="music | audio | photo | video | image | pdf")
    purpose: Optional[str] = Field(None, max_length=100, description="Purpose tag")
    file_name: Optional[str] = Field(None, max_length=255)

    model_config = ConfigDict(extra="ignore")

    @field_validator("entry_id")
    @classmethod
    def validate_entry_id(cls, v: str) -> str:
        return InputSanitizer.sanitize_entry_id(v)

    @field_validator("file_type")
    @classmethod
    def validate_file_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ALLOWED_FILE_TYPES:
            raise ValueError(f"file_type must be one of {ALLOWED_FILE_TYPES}, got {v}")
        return v

    @field_validator("purpose")
    @classmethod
    def validate_purpose(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None


class EvaluationRequest(BaseModel):
    """Payload for evaluating one stage from an untyped caller (JSON, forms)"""

    stage: str
    fields: Dict[str, Any] = Field(default_factory=dict)
    files: Dict[str, bool] = Field(default_factory=dict, description="purpose -> exists")
    today: Optional[date] = None

    @field_validator("stage")
    @classmethod
    def validate_stage(cls, v: str) -> str:
        return InputSanitizer.normalize_stage_name(v)

    @field_validator("fields", mode="before")
    @classmethod
    def validate_fields(cls, v: Any) -> Dict[str, Any]:
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("fields must be an object")
        return v


class SnapshotRecord(BaseModel):
    """One stage row inside a snapshot export"""

    entry_id: str = Field(..., min_length=1, max_length=64)

    model_config = ConfigDict(extra="allow")


class StoreSnapshot(BaseModel):
    """Export of entries, stage records and attachments.

    Used by the command line to run the batch offline against a dump.
    """

    entries: List[Dict[str, Any]] = Field(default_factory=list)
    records: Dict[str, List[SnapshotRecord]] = Field(default_factory=dict)
    files: List[ValidatedEntryFile] = Field(default_factory=list)

    @field_validator("records")
    @classmethod
    def validate_record_stages(
        cls, v: Dict[str, List[SnapshotRecord]]
    ) -> Dict[str, List[SnapshotRecord]]:
        for stage in v:
            InputSanitizer.normalize_stage_name(stage)
        return v

    @model_validator(mode="after")
    def validate_entry_ids(self) -> Self:
        """Every entry needs an id; records may only point at known entries"""
        known = set()
        for i, entry in enumerate(self.entries):
            raw_id = entry.get("id")
            if raw_id in (None, ""):
                raise ValueError(f"entry {i} missing id")
            known.add(str(raw_id))
        for stage, rows in self.records.items():
            for row in rows:
                if row.entry_id not in known:
                    logger.warning(f"Snapshot {stage} row for unknown entry {row.entry_id}")
        return self


__all__ = [
    "ALLOWED_FILE_TYPES",
    "EvaluationRequest",
    "InputSanitizer",
    "SnapshotRecord",
    "StoreSnapshot",
    "ValidatedEntryFile",
]
