"""
Error taxonomy and validation helpers for persona records and configuration
"""

from typing import Any, List, Mapping, Sequence
from pathlib import Path


class DispatchError(Exception):
    """Base class for every error raised by the dispatch core"""
    pass


class MalformedDefinition(DispatchError):
    """A raw persona record is missing or has invalid required fields"""

    def __init__(self, origin: str, issues: Sequence[str]):
        self.origin = origin
        self.issues = list(issues)
        super().__init__(f"Malformed persona definition in {origin}: {'; '.join(self.issues)}")


class DuplicateId(DispatchError):
    """Two persona records resolve to the same id"""

    def __init__(self, persona_id: str, origins: Sequence[str] = ()):
        self.persona_id = persona_id
        self.origins = list(origins)
        detail = f" ({', '.join(self.origins)})" if self.origins else ""
        super().__init__(f"Duplicate persona id '{persona_id}'{detail}")


class LoadTimeout(DispatchError):
    """Loading the catalog exceeded the caller-supplied deadline"""

    def __init__(self, timeout: float, loaded: int = 0):
        self.timeout = timeout
        self.loaded = loaded
        super().__init__(f"Catalog load exceeded {timeout:.3f}s after {loaded} record(s)")


class CatalogNotFound(DispatchError, FileNotFoundError):
    """The configured catalog source does not exist"""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Persona catalog source not found: {source}")

    def __str__(self):
        return f"Persona catalog source not found: {self.source}"


class EmptyCatalog(DispatchError):
    """A load produced no usable persona definitions"""
    pass


class RegistryStateError(DispatchError):
    """The registry was used outside of its initialize/shutdown lifecycle"""
    pass


REQUIRED_FIELDS = ("id", "description", "trigger_examples")


def validate_persona_record(record: Mapping[str, Any]) -> List[str]:
    """
    Validate a resolved persona record before it becomes a PersonaDefinition

    Args:
        record: Mapping with the resolved fields (id, description,
            trigger_examples, color_tag, profile_body, tags)

    Returns:
        List of validation issues (empty if valid)
    """
    issues = []

    for field in REQUIRED_FIELDS:
        if field not in record or record[field] is None:
            issues.append(f"missing required field '{field}'")

    persona_id = record.get("id")
    if persona_id is not None:
        if not isinstance(persona_id, str):
            issues.append(f"'id' must be a string, got {type(persona_id).__name__}")
        elif not persona_id.strip():
            issues.append("'id' is empty")

    description = record.get("description")
    if description is not None:
        if not isinstance(description, str):
            issues.append(f"'description' must be a string, got {type(description).__name__}")
        elif not description.strip():
            issues.append("'description' is empty")

    examples = record.get("trigger_examples")
    if examples is not None:
        if not isinstance(examples, (list, tuple)):
            issues.append("'trigger_examples' must be a list")
        else:
            positive = 0
            for i, example in enumerate(examples):
                text = example.get("text") if isinstance(example, Mapping) else None
                if not isinstance(text, str) or not text.strip():
                    issues.append(f"trigger example {i} has no text")
                elif example.get("applies", True):
                    positive += 1
            if positive == 0:
                issues.append("at least one applicable trigger example is required")

    profile_body = record.get("profile_body")
    if profile_body is not None and not isinstance(profile_body, str):
        issues.append(f"'profile_body' must be a string, got {type(profile_body).__name__}")

    return issues


def validate_config_file(config_path: str) -> List[str]:
    """
    Validate configuration file

    Args:
        config_path: Path to configuration file

    Returns:
        List of validation issues
    """
    issues = []

    config_file = Path(config_path)

    if not config_file.exists():
        issues.append(f"Configuration file not found: {config_path}")
        return issues

    try:
        from ..config.settings import Settings
        settings = Settings(config_path=config_path)
        issues.extend(settings.validate_configuration())
    except Exception as e:
        issues.append(f"Failed to load configuration: {e}")

    return issues
