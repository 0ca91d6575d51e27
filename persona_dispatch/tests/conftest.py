"""
Shared fixtures for the dispatch core tests
"""

import pytest
from pathlib import Path

from persona_dispatch.config.settings import Settings
from persona_dispatch.core.persona_registry import reset_persona_registry
from persona_dispatch.data.storage.definition_store import PersonaDefinitionStore


SAMPLE_CATALOG_DIR = Path(__file__).resolve().parents[2] / "personas"


@pytest.fixture
def settings():
    """Default settings without a load deadline"""
    return Settings(loading={"timeout_seconds": None})


@pytest.fixture
def store(settings):
    return PersonaDefinitionStore(settings)


@pytest.fixture
def scenario_records():
    """The React/TypeScript vs Python catalog"""
    return [
        {
            "name": "react-typescript-architect",
            "description": "Frontend architect for React and TypeScript component design",
            "triggers": ["Refactor this React component", "TypeScript API types"],
            "color": "blue",
            "profile": "You are a React and TypeScript architect.",
        },
        {
            "name": "python-engineer",
            "description": "Backend Python engineer for async services",
            "triggers": ["FastAPI async endpoint", "Celery background job"],
            "color": "green",
            "profile": "You are a Python engineer.",
        },
    ]


@pytest.fixture
def scenario_catalog(store, scenario_records):
    return store.load(scenario_records)


@pytest.fixture
def write_persona(tmp_path):
    """Factory writing a markdown persona file into a temporary catalog directory"""
    catalog_dir = tmp_path / "personas"
    catalog_dir.mkdir()

    def _write(filename: str, metadata: str, body: str = "Profile body.") -> Path:
        path = catalog_dir / filename
        path.write_text(f"---\n{metadata.strip()}\n---\n\n{body}\n", encoding="utf-8")
        return path

    _write.directory = catalog_dir
    return _write


@pytest.fixture(autouse=True)
def _reset_global_registry():
    yield
    reset_persona_registry()
