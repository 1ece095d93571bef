from .batch import BatchReport, StatusChange, compute_entry_statuses, run_completion_batch
from .config import EngineSettings
from .lighting import LightingCue, LightingPlan
from .rules import (
    FileRequirement,
    REQUIRED_FILES,
    StageEvaluation,
    calculate_age,
    evaluate_payload,
    evaluate_stage,
    lookup_required_files,
    required_fields,
)
from .sections import (
    FINALS_SECTIONS,
    SEMIFINALS_SECTIONS,
    validate_finals_sections,
    validate_section,
    validate_semifinals_sections,
)
from .status import (
    StageRefresh,
    compute_stage_status,
    record_stage_status,
    refresh_stage_status,
    resolve_status,
)
from .stores import (
    FileStore,
    InMemoryFileStore,
    InMemoryRecordStore,
    RecordStore,
    StoreConflictError,
    StoreError,
    StoreReadError,
    StoreWriteError,
)
from .sync import SyncOutcome, plan_finals_updates, synchronize_finals_from_semifinals
from .types import STAGES, StageName, StageStatus, status_field
from .validation import EvaluationRequest, InputSanitizer, ValidatedEntryFile
from .workflow import SaveResult, save_stage

__all__ = [
    "BatchReport",
    "StatusChange",
    "compute_entry_statuses",
    "run_completion_batch",
    "EngineSettings",
    "LightingCue",
    "LightingPlan",
    "FileRequirement",
    "REQUIRED_FILES",
    "StageEvaluation",
    "calculate_age",
    "evaluate_payload",
    "evaluate_stage",
    "lookup_required_files",
    "required_fields",
    "FINALS_SECTIONS",
    "SEMIFINALS_SECTIONS",
    "validate_finals_sections",
    "validate_section",
    "validate_semifinals_sections",
    "StageRefresh",
    "compute_stage_status",
    "record_stage_status",
    "refresh_stage_status",
    "resolve_status",
    "FileStore",
    "InMemoryFileStore",
    "InMemoryRecordStore",
    "RecordStore",
    "StoreConflictError",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "SyncOutcome",
    "plan_finals_updates",
    "synchronize_finals_from_semifinals",
    "STAGES",
    "StageName",
    "StageStatus",
    "status_field",
    "EvaluationRequest",
    "InputSanitizer",
    "ValidatedEntryFile",
    "SaveResult",
    "save_stage",
]
