"""
Exception hierarchy for the build-state engine.

Only programmer-contract violations raise. Data-shape problems in rule data
and user-level capacity violations are logged and reported as False/no-op.
"""
from typing import Optional


class BuildEngineError(Exception):
    """Base class for engine contract violations"""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class UninitializedProficiencyTypeError(BuildEngineError):
    """Optional-choice operation on a proficiency type that has no pools"""

    def __init__(self, prof_type: str):
        self.prof_type = prof_type
        super().__init__(
            f"Optional proficiencies not initialized for type: {prof_type}",
            {'type': prof_type}
        )


class UnknownBuildSourceKindError(BuildEngineError):
    """apply_build_source called with a kind other than race/class/background"""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Unknown build source kind: {kind}", {'kind': kind})
