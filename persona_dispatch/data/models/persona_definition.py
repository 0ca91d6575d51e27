"""
Pydantic models for the persona dispatch core.

Every value here is immutable: definitions are created once at load time,
task signatures and scores are created per dispatch request, and a catalog is
a point-in-time snapshot that is replaced, never edited.
"""

from typing import Any, Dict, Iterator, List, Optional, Tuple
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator

from ...utils.validation import DuplicateId


class TriggerExample(BaseModel):
    """A sample task phrasing declared by a persona."""
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1, description="Example task phrasing")
    applies: bool = Field(default=True, description="Whether the persona should handle this kind of task")


class PersonaDefinition(BaseModel):
    """A named, reusable behavioral profile loaded from the catalog source."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique persona name")
    description: str = Field(..., min_length=1, description="Free text used for matching")
    trigger_examples: Tuple[TriggerExample, ...] = Field(..., min_length=1, description="Ordered trigger examples")
    color_tag: Optional[str] = Field(default=None, description="Opaque display metadata")
    profile_body: str = Field(default="", description="Behavioral instructions, opaque to the core")
    tags: Tuple[str, ...] = Field(default=(), description="Declared technology/domain keywords")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Remaining raw metadata")
    origin: Optional[str] = Field(default=None, description="Where the record was loaded from")

    @field_validator('id', 'description')
    @classmethod
    def not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator('tags')
    @classmethod
    def normalize_tags(cls, v):
        seen = []
        for tag in v:
            tag = tag.strip().lower()
            if tag and tag not in seen:
                seen.append(tag)
        return tuple(seen)

    @property
    def positive_examples(self) -> Tuple[TriggerExample, ...]:
        return tuple(e for e in self.trigger_examples if e.applies)

    @property
    def negative_examples(self) -> Tuple[TriggerExample, ...]:
        return tuple(e for e in self.trigger_examples if not e.applies)

    def __hash__(self):
        return hash((self.id, self.description, self.trigger_examples, self.profile_body))


class TaskSignature(BaseModel):
    """An incoming task: raw text plus optional structured hints."""
    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="Raw task text")
    hints: Tuple[str, ...] = Field(default=(), description="Declared technology/domain tags")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Opaque caller data")

    @field_validator('hints')
    @classmethod
    def normalize_hints(cls, v):
        seen = []
        for hint in v:
            hint = hint.strip().lower()
            if hint and hint not in seen:
                seen.append(hint)
        return tuple(seen)

    @classmethod
    def from_text(cls, text: str, *hints: str) -> "TaskSignature":
        return cls(text=text, hints=hints)


class MatchScore(BaseModel):
    """Confidence of one persona against one task, with its rationale."""
    model_config = ConfigDict(frozen=True)

    persona_id: str
    value: float = Field(..., ge=0.0, le=1.0)
    matched_terms: Tuple[str, ...] = ()
    matched_hints: Tuple[str, ...] = ()
    best_example: Optional[str] = None

    example_similarity: float = 0.0
    description_similarity: float = 0.0
    hint_bonus: float = 0.0
    negative_similarity: float = 0.0

    def sort_key(self) -> Tuple[float, str]:
        """Higher score first, then lexicographically smaller id"""
        return (-self.value, self.persona_id)


class DispatchHandle(BaseModel):
    """The selected persona bound to the task and the score that justified it."""
    model_config = ConfigDict(frozen=True)

    persona: PersonaDefinition
    task: TaskSignature
    score: MatchScore
    catalog_version: int = 0

    @model_validator(mode='after')
    def score_matches_persona(self):
        if self.score.persona_id != self.persona.id:
            raise ValueError(
                f"score belongs to '{self.score.persona_id}', not '{self.persona.id}'"
            )
        return self

    @property
    def persona_id(self) -> str:
        return self.persona.id

    @property
    def profile_body(self) -> str:
        return self.persona.profile_body

    @property
    def color_tag(self) -> Optional[str]:
        return self.persona.color_tag

    def to_dict(self, selected_at: Optional[datetime] = None) -> Dict[str, Any]:
        """Audit record of the selection (profile body excluded), stamped now unless given"""
        selected_at = selected_at or datetime.now(timezone.utc)
        return {
            "persona_id": self.persona_id,
            "score": self.score.value,
            "matched_terms": list(self.score.matched_terms),
            "matched_hints": list(self.score.matched_hints),
            "best_example": self.score.best_example,
            "catalog_version": self.catalog_version,
            "selected_at": selected_at.isoformat(),
            "task": self.task.text,
        }


class NoMatch(BaseModel):
    """No persona cleared the confidence threshold. An outcome, not an error."""
    model_config = ConfigDict(frozen=True)

    task: TaskSignature
    threshold: float
    reason: str = Field(default="below_threshold", description="empty_task | empty_catalog | below_threshold")
    best_candidate: Optional[MatchScore] = None
    catalog_version: int = 0

    def __bool__(self):
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "persona_id": None,
            "reason": self.reason,
            "threshold": self.threshold,
            "best_candidate": self.best_candidate.persona_id if self.best_candidate else None,
            "best_score": self.best_candidate.value if self.best_candidate else None,
            "catalog_version": self.catalog_version,
            "task": self.task.text,
        }


class RejectedRecord(BaseModel):
    """A raw record skipped during a non-strict load."""
    model_config = ConfigDict(frozen=True)

    origin: str
    reason: str


class Catalog(BaseModel):
    """Immutable point-in-time view of the loaded persona definitions."""
    model_config = ConfigDict(frozen=True)

    definitions: Tuple[PersonaDefinition, ...] = ()
    version: int = 0
    source: Optional[str] = None
    loaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    rejected: Tuple[RejectedRecord, ...] = ()

    _index: Dict[str, PersonaDefinition] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context):
        self._index = {d.id: d for d in self.definitions}

    @field_validator('definitions')
    @classmethod
    def unique_sorted(cls, v):
        by_id: Dict[str, PersonaDefinition] = {}
        for definition in v:
            if definition.id in by_id:
                first = by_id[definition.id]
                raise DuplicateId(
                    definition.id,
                    [o for o in (first.origin, definition.origin) if o],
                )
            by_id[definition.id] = definition
        return tuple(sorted(v, key=lambda d: d.id))

    def __len__(self) -> int:
        return len(self.definitions)

    def __iter__(self) -> Iterator[PersonaDefinition]:
        return iter(self.definitions)

    def __contains__(self, persona_id) -> bool:
        return self.get(persona_id) is not None

    def get(self, persona_id: str) -> Optional[PersonaDefinition]:
        return self._index.get(persona_id)

    def ids(self) -> List[str]:
        return [d.id for d in self.definitions]

    def with_definition(self, definition: PersonaDefinition, replace: bool = False, version: Optional[int] = None) -> "Catalog":
        """
        Copy of this catalog with ``definition`` added

        Raises:
            DuplicateId: If the id exists and ``replace`` is False
        """
        existing = self.get(definition.id)
        if existing is not None and not replace:
            raise DuplicateId(definition.id, [o for o in (existing.origin, definition.origin) if o])
        kept = tuple(d for d in self.definitions if d.id != definition.id)
        return Catalog(
            definitions=kept + (definition,),
            version=self.version if version is None else version,
            source=self.source,
            rejected=self.rejected,
        )

    def without_definition(self, persona_id: str, version: Optional[int] = None) -> "Catalog":
        """Copy of this catalog without ``persona_id``"""
        if persona_id not in self:
            raise KeyError(persona_id)
        return Catalog(
            definitions=tuple(d for d in self.definitions if d.id != persona_id),
            version=self.version if version is None else version,
            source=self.source,
            rejected=self.rejected,
        )

    def with_version(self, version: int) -> "Catalog":
        return self.model_copy(update={"version": version})
