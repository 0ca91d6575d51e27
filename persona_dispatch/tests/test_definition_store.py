"""
Tests for loading persona definitions into catalogs
"""

import json
import time

import pytest

from persona_dispatch.config.settings import Settings
from persona_dispatch.data.storage.definition_store import (
    PersonaDefinitionStore,
    extract_embedded_examples,
    parse_front_matter,
)
from persona_dispatch.utils.validation import (
    CatalogNotFound,
    DuplicateId,
    EmptyCatalog,
    LoadTimeout,
    MalformedDefinition,
)
from conftest import SAMPLE_CATALOG_DIR


class TestFrontMatter:
    """Test splitting persona files into metadata and body"""

    def test_yaml_block(self):
        metadata, body = parse_front_matter("---\nname: a\ncolor: red\n---\n\nBody text\n")
        assert metadata == {"name": "a", "color": "red"}
        assert body == "Body text"

    def test_fallback_for_unquoted_colons(self):
        text = (
            "---\n"
            "name: reviewer\n"
            'description: Use for reviews.\\n<example>\\nuser: "Review this"\\nassistant: ok\\n</example>\n'
            "color: yellow\n"
            "---\n"
            "Body"
        )
        metadata, body = parse_front_matter(text)
        assert metadata["name"] == "reviewer"
        assert metadata["color"] == "yellow"
        assert metadata["description"].startswith("Use for reviews.")
        assert body == "Body"

    def test_no_block(self):
        metadata, body = parse_front_matter("just text")
        assert metadata == {}
        assert body == "just text"


class TestEmbeddedExamples:
    """Test extraction of <example> blocks from descriptions"""

    def test_user_lines_become_triggers(self):
        description = (
            "Use this agent for Rails work.\n\nExamples:\n"
            "<example>\nContext: new table\nuser: \"Add a migration for invoices\"\nassistant: sure\n</example>"
        )
        summary, examples = extract_embedded_examples(description)
        assert summary == "Use this agent for Rails work."
        assert examples == [{"text": "Add a migration for invoices", "applies": True}]

    def test_negative_commentary(self):
        description = (
            "Rails agent.\n<example>\nuser: Design a generic API\n"
            "<commentary>Should not use this agent for generic design.</commentary>\n</example>"
        )
        _, examples = extract_embedded_examples(description)
        assert examples == [{"text": "Design a generic API", "applies": False}]


class TestLoad:
    """Test PersonaDefinitionStore.load"""

    def test_load_in_memory_records(self, store, scenario_records):
        catalog = store.load(scenario_records)

        assert catalog.ids() == ["python-engineer", "react-typescript-architect"]
        react = catalog.get("react-typescript-architect")
        assert react.color_tag == "blue"
        assert [e.text for e in react.trigger_examples] == ["Refactor this React component", "TypeScript API types"]
        assert react.profile_body == "You are a React and TypeScript architect."
        assert catalog.rejected == ()

    def test_load_directory_of_markdown(self, store, write_persona):
        write_persona("b.md", "name: beta\ndescription: Beta persona\ntriggers:\n  - do beta things")
        write_persona(
            "a.md",
            "name: alpha\ndescription: Alpha persona\ntriggers: [do alpha things]\ncolor: red\nmodel: sonnet",
            body="Alpha profile",
        )

        catalog = store.load(write_persona.directory)

        assert catalog.ids() == ["alpha", "beta"]
        alpha = catalog.get("alpha")
        assert alpha.profile_body == "Alpha profile"
        assert alpha.metadata == {"model": "sonnet"}
        assert alpha.origin.endswith("a.md")

    def test_load_yaml_catalog_file(self, store, tmp_path, scenario_records):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"personas": scenario_records}), encoding="utf-8")

        catalog = store.load(path)
        assert len(catalog) == 2

    def test_sample_catalog(self, store):
        catalog = store.load(SAMPLE_CATALOG_DIR)

        assert catalog.ids() == ["python-engineer", "rails-api-developer", "react-typescript-architect"]

        react = catalog.get("react-typescript-architect")
        assert len(react.trigger_examples) == 2
        assert "<example>" not in react.description
        assert react.tags == ("react", "typescript", "frontend")

        rails = catalog.get("rails-api-developer")
        assert len(rails.positive_examples) == 1
        assert len(rails.negative_examples) == 1

        python = catalog.get("python-engineer")
        assert python.trigger_examples[2].text == "Add type hints and pytest tests to this Python module"
        assert python.metadata == {"model": "inherit"}

    def test_missing_source(self, store, tmp_path):
        with pytest.raises(CatalogNotFound):
            store.load(tmp_path / "nope")

    def test_empty_catalog_fails_loudly(self, store):
        with pytest.raises(EmptyCatalog):
            store.load([])

    def test_empty_catalog_allowed(self):
        store = PersonaDefinitionStore(Settings(loading={"allow_empty": True, "timeout_seconds": None}))
        assert len(store.load([])) == 0


class TestMalformedDefinitions:
    """Test handling of records missing required fields"""

    def test_missing_description_strict(self, store, scenario_records):
        del scenario_records[0]["description"]

        with pytest.raises(MalformedDefinition) as exc_info:
            store.load(scenario_records, strict=True)
        assert any("description" in issue for issue in exc_info.value.issues)

    def test_missing_description_non_strict_keeps_valid_records(self, store, scenario_records):
        del scenario_records[0]["description"]

        catalog = store.load(scenario_records)

        assert catalog.ids() == ["python-engineer"]
        assert len(catalog.rejected) == 1
        assert "description" in catalog.rejected[0].reason

    def test_strict_mode_from_settings(self, scenario_records):
        store = PersonaDefinitionStore(Settings(loading={"strict_mode": True, "timeout_seconds": None}))
        scenario_records[1]["triggers"] = []
        with pytest.raises(MalformedDefinition):
            store.load(scenario_records)

    @pytest.mark.parametrize("record, fragment", [
        ({"description": "d", "triggers": ["t"]}, "id"),
        ({"name": "x", "description": "   ", "triggers": ["t"]}, "description"),
        ({"name": "x", "description": "d"}, "trigger_examples"),
        ({"name": "x", "description": "d", "triggers": [{"text": "t", "applies": False}]}, "applicable"),
        ({"name": 3, "description": "d", "triggers": ["t"]}, "string"),
    ])
    def test_validation_issues(self, store, record, fragment):
        with pytest.raises(MalformedDefinition) as exc_info:
            store.load([record], strict=True)
        assert fragment in str(exc_info.value)

    def test_file_without_metadata_is_rejected(self, store, write_persona):
        write_persona("good.md", "name: good\ndescription: Good\ntriggers: [do good]")
        (write_persona.directory / "notes.md").write_text("no metadata here", encoding="utf-8")

        catalog = store.load(write_persona.directory)
        assert catalog.ids() == ["good"]
        assert catalog.rejected[0].reason == "no metadata block"


class TestDuplicateIds:
    """Test that duplicate ids never merge silently"""

    def test_duplicate_in_records(self, store, scenario_records):
        scenario_records.append(dict(scenario_records[0]))

        with pytest.raises(DuplicateId) as exc_info:
            store.load(scenario_records)
        assert exc_info.value.persona_id == "react-typescript-architect"

    def test_duplicate_across_files(self, store, write_persona):
        write_persona("one.md", "name: same\ndescription: First\ntriggers: [x]")
        write_persona("two.md", "name: same\ndescription: Second\ntriggers: [y]")

        with pytest.raises(DuplicateId):
            store.load(write_persona.directory, strict=False)


class TestLoadTimeout:
    """Test the caller-supplied load deadline"""

    def test_slow_source_times_out(self, store, scenario_records):
        def slow_records():
            for record in scenario_records:
                time.sleep(0.05)
                yield record

        with pytest.raises(LoadTimeout) as exc_info:
            store.load(slow_records(), timeout=0.01)
        assert exc_info.value.timeout == 0.01

    def test_no_deadline(self, store, scenario_records):
        assert len(store.load(scenario_records, timeout=None)) == 2

    def test_reload_returns_new_catalog(self, store, scenario_records):
        first = store.load(scenario_records)
        second = store.reload(scenario_records[:1])
        assert len(first) == 2
        assert len(second) == 1
