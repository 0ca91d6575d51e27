"""
Core dispatch components: matcher, selector and registry
"""

from .trigger_matcher import TriggerMatcher
from .selector import PersonaSelector
from .persona_registry import PersonaRegistry, get_persona_registry, reset_persona_registry

__all__ = ["TriggerMatcher", "PersonaSelector", "PersonaRegistry", "get_persona_registry", "reset_persona_registry"]
