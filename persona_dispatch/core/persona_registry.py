"""
Persona Registry

Process-wide holder of the current catalog snapshot. Consumers go through
initialize/reload/select; the snapshot is replaced by a single reference
assignment so readers never observe a partially built catalog.
"""

import threading
from typing import Any, Dict, List, Optional, Union

from ..config.settings import Settings, get_settings
from ..data.models.persona_definition import Catalog, MatchScore, PersonaDefinition, TaskSignature
from ..data.storage.definition_store import CatalogSource, PersonaDefinitionStore, CONFIGURED_TIMEOUT
from ..utils.logging import get_component_logger
from ..utils.validation import RegistryStateError
from .selector import PersonaSelector, SelectionResult


class PersonaRegistry:
    """
    Lifecycle-managed catalog state.

    Writers (initialize, reload, register, unregister, shutdown) are
    serialised by a lock. Readers take the current snapshot reference without
    locking and run to completion against it.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[PersonaDefinitionStore] = None,
        selector: Optional[PersonaSelector] = None
    ):
        self.settings = settings or get_settings()
        self.store = store or PersonaDefinitionStore(self.settings)
        self.selector = selector or PersonaSelector(self.settings.matching)
        self.logger = get_component_logger("Registry")

        self._lock = threading.RLock()
        self._catalog: Optional[Catalog] = None
        self._version = 0
        self._source: Optional[CatalogSource] = None
        self._closed = False

    # -------------------------
    # Lifecycle
    # -------------------------
    @property
    def is_initialized(self) -> bool:
        return self._catalog is not None

    def initialize(self, source: Optional[CatalogSource] = None, timeout: Any = CONFIGURED_TIMEOUT) -> Catalog:
        """
        Load the initial catalog.

        Raises:
            RegistryStateError: Already initialized or shut down
        """
        with self._lock:
            if self._closed:
                raise RegistryStateError("Registry has been shut down")
            if self._catalog is not None:
                raise RegistryStateError("Registry already initialized; use reload()")

            catalog = self.store.load(source, timeout=timeout)
            self._source = source
            return self._swap(catalog)

    def reload(self, source: Optional[CatalogSource] = None, timeout: Any = CONFIGURED_TIMEOUT) -> Catalog:
        """
        Replace the catalog with a freshly loaded one.

        On any load error the current snapshot stays in place and the error
        propagates to the caller.
        """
        with self._lock:
            self._require_active()
            if source is None:
                source = self._source
            catalog = self.store.reload(source, timeout=timeout)
            self._source = source
            previous = self._catalog
            swapped = self._swap(catalog)
            self.logger.info(
                f"Reloaded catalog v{previous.version} -> v{swapped.version} "
                f"({len(previous)} -> {len(swapped)} personas)"
            )
            return swapped

    def register(self, definition: PersonaDefinition, replace: bool = False) -> Catalog:
        """
        Add a definition to a copy of the current snapshot and swap it in.

        Raises:
            DuplicateId: The id is taken and ``replace`` is False
        """
        with self._lock:
            self._require_active()
            catalog = self._catalog.with_definition(definition, replace=replace)
            self.logger.info(f"Registered persona '{definition.id}'" + (" (replace)" if replace else ""))
            return self._swap(catalog)

    def unregister(self, persona_id: str) -> Catalog:
        """
        Remove a definition from a copy of the current snapshot and swap it in.

        Raises:
            KeyError: Unknown persona id
        """
        with self._lock:
            self._require_active()
            catalog = self._catalog.without_definition(persona_id)
            self.logger.info(f"Unregistered persona '{persona_id}'")
            return self._swap(catalog)

    def shutdown(self):
        """Release the held catalog; the registry cannot be used afterwards"""
        with self._lock:
            if self._closed:
                return
            self._catalog = None
            self._closed = True
            self.selector.matcher.clear_cache()
            self.logger.info("Registry shut down")

    def _swap(self, catalog: Catalog) -> Catalog:
        self._version += 1
        catalog = catalog.with_version(self._version)
        # single reference assignment; readers see either the old or the new snapshot
        self._catalog = catalog
        self.selector.matcher.retain(catalog.definitions)
        self.logger.info(f"Catalog v{catalog.version} active with {len(catalog)} persona(s)")
        return catalog

    def _require_active(self):
        if self._closed:
            raise RegistryStateError("Registry has been shut down")
        if self._catalog is None:
            raise RegistryStateError("Registry not initialized; call initialize() first")

    # -------------------------
    # Readers
    # -------------------------
    def snapshot(self) -> Catalog:
        """Current immutable catalog"""
        catalog = self._catalog
        if catalog is None:
            self._require_active()
        return catalog

    def select(self, task: Union[str, TaskSignature], min_confidence: Optional[float] = None) -> SelectionResult:
        """Select a persona for ``task`` against the current snapshot"""
        return self.selector.select(self.snapshot(), task, min_confidence=min_confidence)

    def rank(self, task: Union[str, TaskSignature], top_k: Optional[int] = None) -> List[MatchScore]:
        """Scores of every persona for ``task``, best first"""
        return self.selector.rank(self.snapshot(), task, top_k=top_k)

    def get(self, persona_id: str) -> Optional[PersonaDefinition]:
        return self.snapshot().get(persona_id)

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get registry statistics.

        Returns:
            Dictionary with registry statistics
        """
        catalog = self._catalog
        if catalog is None:
            return {"status": "shut_down" if self._closed else "not_initialized"}
        return {
            "status": "active",
            "version": catalog.version,
            "personas": len(catalog),
            "persona_ids": catalog.ids(),
            "rejected": len(catalog.rejected),
            "source": catalog.source,
            "loaded_at": catalog.loaded_at.isoformat(),
        }


# Global persona registry instance
_persona_registry: Optional[PersonaRegistry] = None
_registry_lock = threading.Lock()


def get_persona_registry(settings: Optional[Settings] = None) -> PersonaRegistry:
    """Get the global persona registry instance (not yet initialized on first call)"""
    global _persona_registry
    with _registry_lock:
        if _persona_registry is None:
            _persona_registry = PersonaRegistry(settings)
        return _persona_registry


def reset_persona_registry():
    """Shut down and forget the global registry"""
    global _persona_registry
    with _registry_lock:
        if _persona_registry is not None:
            _persona_registry.shutdown()
        _persona_registry = None
