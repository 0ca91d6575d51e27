"""
Selector

Resolves the single best persona for a task from a catalog snapshot, or
reports NoMatch when nothing clears the minimum confidence.
"""

from typing import List, Optional, Union

from ..config.settings import MatchingConfig
from ..data.models.persona_definition import (
    Catalog,
    DispatchHandle,
    MatchScore,
    NoMatch,
    TaskSignature,
)
from ..utils.logging import get_component_logger
from .trigger_matcher import TriggerMatcher, explain


SelectionResult = Union[DispatchHandle, NoMatch]


def as_task(task: Union[str, TaskSignature]) -> TaskSignature:
    if isinstance(task, TaskSignature):
        return task
    return TaskSignature(text=task)


class PersonaSelector:
    """
    Picks the highest scoring persona.

    Ordering is (higher score, lexicographically smaller id), so equal scores
    always resolve the same way. Selection only reads the catalog it is given.
    """

    def __init__(self, config: Optional[MatchingConfig] = None, matcher: Optional[TriggerMatcher] = None):
        self.config = config or MatchingConfig()
        self.matcher = matcher or TriggerMatcher(self.config)
        self.logger = get_component_logger("Selector")

    def rank(
        self,
        catalog: Catalog,
        task: Union[str, TaskSignature],
        top_k: Optional[int] = None
    ) -> List[MatchScore]:
        """
        Score every persona in the catalog, best first

        Args:
            catalog: Snapshot to score against
            task: Task text or signature
            top_k: Keep only the first ``top_k`` scores

        Returns:
            Scores ordered by (higher value, smaller id)
        """
        task = as_task(task)
        scores = sorted(
            (self.matcher.score(definition, task) for definition in catalog),
            key=MatchScore.sort_key,
        )
        return scores[:top_k] if top_k is not None else scores

    def select(
        self,
        catalog: Catalog,
        task: Union[str, TaskSignature],
        min_confidence: Optional[float] = None
    ) -> SelectionResult:
        """
        Select the persona for ``task``.

        Args:
            catalog: Snapshot to select from
            task: Task text or signature
            min_confidence: Override of ``matching.min_confidence``

        Returns:
            DispatchHandle for the winner, or NoMatch
        """
        task = as_task(task)
        threshold = self.config.min_confidence if min_confidence is None else min_confidence

        if not task.text.strip() and not task.hints:
            return NoMatch(task=task, threshold=threshold, reason="empty_task", catalog_version=catalog.version)

        if len(catalog) == 0:
            return NoMatch(task=task, threshold=threshold, reason="empty_catalog", catalog_version=catalog.version)

        ranked = self.rank(catalog, task)
        best = ranked[0]

        if best.value <= 0.0 or best.value < threshold:
            self.logger.debug(f"No persona above {threshold:.3f}; best was {explain(best)}")
            return NoMatch(
                task=task,
                threshold=threshold,
                reason="below_threshold",
                best_candidate=best,
                catalog_version=catalog.version,
            )

        if len(ranked) > 1 and ranked[1].value == best.value:
            self.logger.debug(f"Tie at {best.value:.3f} between {best.persona_id} and {ranked[1].persona_id}; kept {best.persona_id}")

        self.logger.debug(f"Selected {explain(best)}")
        return DispatchHandle(
            persona=catalog.get(best.persona_id),
            task=task,
            score=best,
            catalog_version=catalog.version,
        )
