"""
Utility modules for validation, logging, and text processing
"""

from .validation import DispatchError, validate_persona_record
from .logging import setup_logger, get_logger, get_component_logger

__all__ = ["DispatchError", "validate_persona_record", "setup_logger", "get_logger", "get_component_logger"]
