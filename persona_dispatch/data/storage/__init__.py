"""
Loading persona definitions from configuration sources
"""

from .definition_store import PersonaDefinitionStore, parse_front_matter

__all__ = ["PersonaDefinitionStore", "parse_front_matter"]
