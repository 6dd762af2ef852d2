"""Data models for pakky.

This module exports the core data structures used throughout the application.
"""

from pakky.models.config import ConfigMetadata, HomebrewPackages, PackageEntry, PakkyConfig, Preset
from pakky.models.package import (
    PackageAction,
    PackageStatus,
    PackageType,
    QueueItem,
    SearchResult,
    make_item_id,
)
from pakky.models.result import InstallOutcome, InstallResult
from pakky.models.script import (
    Condition,
    ConditionKind,
    InputSpec,
    ScriptRunResult,
    ScriptStep,
    ScriptTemplate,
    StepOutcome,
    StepResult,
    ValidationKind,
)
from pakky.models.session import SessionSnapshot, SessionStatus

__all__ = [
    "Condition",
    "ConditionKind",
    "ConfigMetadata",
    "HomebrewPackages",
    "InputSpec",
    "InstallOutcome",
    "InstallResult",
    "PackageAction",
    "PackageEntry",
    "PackageStatus",
    "PackageType",
    "PakkyConfig",
    "Preset",
    "QueueItem",
    "ScriptRunResult",
    "ScriptStep",
    "ScriptTemplate",
    "SearchResult",
    "SessionSnapshot",
    "SessionStatus",
    "StepOutcome",
    "StepResult",
    "ValidationKind",
    "make_item_id",
]
