"""
Trigger Matcher

Scores how well a persona definition applies to a task. The score combines
lexical overlap with the definition's trigger examples and description, a
bonus for declared technology/domain hints, and a damping factor from
negative trigger examples. Scoring is a pure function of its inputs.
"""

import threading
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from ..config.settings import MatchingConfig
from ..data.models.persona_definition import MatchScore, PersonaDefinition, TaskSignature
from ..utils.logging import get_component_logger
from ..utils.text_utils import build_stopwords, dice_similarity, normalize_terms


SCORE_PRECISION = 6


class DefinitionTerms:
    """Normalised term sets of one definition, computed once"""

    __slots__ = ("description", "examples", "negatives", "trigger_vocabulary")

    def __init__(
        self,
        description: FrozenSet[str],
        examples: Tuple[Tuple[str, FrozenSet[str]], ...],
        negatives: Tuple[FrozenSet[str], ...],
        trigger_vocabulary: FrozenSet[str],
    ):
        self.description = description
        self.examples = examples
        self.negatives = negatives
        self.trigger_vocabulary = trigger_vocabulary


class TriggerMatcher:
    """
    Deterministic scorer of (definition, task) pairs.

    Safe to share between threads: the only state is a cache of per-definition
    term sets, whose entries are derived from immutable definitions.
    """

    def __init__(self, config: Optional[MatchingConfig] = None):
        self.config = config or MatchingConfig()
        self.logger = get_component_logger("Matcher")
        self.stopwords = build_stopwords(self.config.extra_stopwords)
        self.weights = self.config.normalized_weights()

        self._terms_cache: Dict[PersonaDefinition, DefinitionTerms] = {}
        self._cache_lock = threading.Lock()

    def normalize(self, text: str) -> FrozenSet[str]:
        return normalize_terms(text, self.stopwords, self.config.use_stemming)

    def normalize_hint(self, hint: str) -> FrozenSet[str]:
        """Terms of a hint, keeping stop-words so short tags like 'go' survive"""
        return normalize_terms(hint, frozenset(), self.config.use_stemming)

    def definition_terms(self, definition: PersonaDefinition) -> DefinitionTerms:
        cached = self._terms_cache.get(definition)
        if cached is not None:
            return cached

        examples = tuple(
            (example.text, self.normalize(example.text))
            for example in definition.positive_examples
        )
        negatives = tuple(self.normalize(example.text) for example in definition.negative_examples)

        # declared tags keep stop-words so short ones like "go" still match
        vocabulary = set()
        for _, example_terms in examples:
            vocabulary.update(example_terms)
        for tag in definition.tags:
            vocabulary.update(self.normalize_hint(tag))
            vocabulary.add(tag)

        terms = DefinitionTerms(
            description=self.normalize(definition.description),
            examples=examples,
            negatives=negatives,
            trigger_vocabulary=frozenset(vocabulary),
        )
        with self._cache_lock:
            terms = self._terms_cache.setdefault(definition, terms)
        self.logger.debug(
            f"Indexed {definition.id}: {len(examples)} example(s), "
            f"{len(negatives)} negative, {len(terms.trigger_vocabulary)} trigger term(s)"
        )
        return terms

    def matched_hints(self, definition: PersonaDefinition, task: TaskSignature) -> Tuple[str, ...]:
        vocabulary = self.definition_terms(definition).trigger_vocabulary
        matched = []
        for hint in task.hints:
            hint_terms = self.normalize(hint)
            if hint in vocabulary or (hint_terms and hint_terms <= vocabulary):
                matched.append(hint)
        return tuple(sorted(matched))

    def score(self, definition: PersonaDefinition, task: TaskSignature) -> MatchScore:
        """
        Score ``definition`` against ``task``.

        Returns:
            MatchScore with a value in [0, 1] and the terms that contributed
        """
        terms = self.definition_terms(definition)
        task_terms = self.normalize(task.text)

        best_example = None
        example_similarity = 0.0
        for text, example_terms in terms.examples:
            similarity = dice_similarity(task_terms, example_terms)
            # strict comparison keeps the earliest example on ties
            if similarity > example_similarity:
                example_similarity = similarity
                best_example = text

        description_similarity = dice_similarity(task_terms, terms.description)

        matched_hints = self.matched_hints(definition, task)
        hint_bonus = self.config.hint_bonus if matched_hints else 0.0

        negative_similarity = max(
            (dice_similarity(task_terms, negative) for negative in terms.negatives),
            default=0.0,
        )

        value = (
            self.weights["example"] * example_similarity
            + self.weights["description"] * description_similarity
            + hint_bonus
        )
        value *= 1.0 - self.config.negative_penalty * negative_similarity
        value = round(min(1.0, max(0.0, value)), SCORE_PRECISION)

        example_vocabulary = frozenset().union(*(t for _, t in terms.examples)) if terms.examples else frozenset()
        matched_terms = task_terms & (example_vocabulary | terms.description)

        return MatchScore(
            persona_id=definition.id,
            value=value,
            matched_terms=tuple(sorted(matched_terms)),
            matched_hints=matched_hints,
            best_example=best_example,
            example_similarity=round(example_similarity, SCORE_PRECISION),
            description_similarity=round(description_similarity, SCORE_PRECISION),
            hint_bonus=hint_bonus,
            negative_similarity=round(negative_similarity, SCORE_PRECISION),
        )

    @property
    def cache_size(self) -> int:
        return len(self._terms_cache)

    def retain(self, definitions: Iterable[PersonaDefinition]):
        """Drop cached term sets of definitions no longer in use"""
        live = set(definitions)
        with self._cache_lock:
            stale = [d for d in self._terms_cache if d not in live]
            for definition in stale:
                del self._terms_cache[definition]
        if stale:
            self.logger.debug(f"Dropped {len(stale)} cached definition(s)")

    def clear_cache(self):
        with self._cache_lock:
            self._terms_cache.clear()


def explain(score: MatchScore) -> str:
    """One-line human readable rationale of a score"""
    parts = [f"{score.persona_id}={score.value:.3f}"]
    if score.matched_terms:
        parts.append("terms=" + ",".join(score.matched_terms))
    if score.matched_hints:
        parts.append("hints=" + ",".join(score.matched_hints))
    if score.best_example:
        parts.append(f'example="{score.best_example}"')
    return " ".join(parts)
