"""
Persona registry and dispatch core.

Loads a catalog of persona definitions, scores them against incoming tasks
and hands the calling runtime the best-matching persona profile.
"""

from .config.settings import Settings, get_settings, load_settings
from .data.models.persona_definition import (
    Catalog,
    DispatchHandle,
    MatchScore,
    NoMatch,
    PersonaDefinition,
    TaskSignature,
    TriggerExample,
)
from .data.storage.definition_store import PersonaDefinitionStore
from .core.trigger_matcher import TriggerMatcher
from .core.selector import PersonaSelector
from .core.persona_registry import PersonaRegistry, get_persona_registry, reset_persona_registry
from .utils.validation import (
    CatalogNotFound,
    DispatchError,
    DuplicateId,
    EmptyCatalog,
    LoadTimeout,
    MalformedDefinition,
    RegistryStateError,
)

__version__ = "1.0.0"

__all__ = [
    "Settings",
    "get_settings",
    "load_settings",
    "Catalog",
    "DispatchHandle",
    "MatchScore",
    "NoMatch",
    "PersonaDefinition",
    "TaskSignature",
    "TriggerExample",
    "PersonaDefinitionStore",
    "TriggerMatcher",
    "PersonaSelector",
    "PersonaRegistry",
    "get_persona_registry",
    "reset_persona_registry",
    "CatalogNotFound",
    "DispatchError",
    "DuplicateId",
    "EmptyCatalog",
    "LoadTimeout",
    "MalformedDefinition",
    "RegistryStateError",
]
