"""
Immutable value objects of the dispatch core
"""

from .persona_definition import (
    Catalog,
    DispatchHandle,
    MatchScore,
    NoMatch,
    PersonaDefinition,
    RejectedRecord,
    TaskSignature,
    TriggerExample,
)

__all__ = [
    "Catalog",
    "DispatchHandle",
    "MatchScore",
    "NoMatch",
    "PersonaDefinition",
    "RejectedRecord",
    "TaskSignature",
    "TriggerExample",
]
