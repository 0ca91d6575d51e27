"""
Persona Definition Store

Loads persona records from a configuration source (a directory of markdown
persona files, a YAML/JSON catalog file, or an in-memory sequence of
mappings), validates them and produces an immutable Catalog.
"""

import json
import re
import time
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

import yaml

from ..models.persona_definition import (
    Catalog,
    PersonaDefinition,
    RejectedRecord,
    TriggerExample,
)
from ...config.settings import Settings
from ...utils.logging import get_component_logger
from ...utils.validation import (
    CatalogNotFound,
    DuplicateId,
    EmptyCatalog,
    LoadTimeout,
    MalformedDefinition,
    validate_persona_record,
)


CatalogSource = Union[str, Path, Iterable[Mapping[str, Any]]]

CATALOG_SUFFIXES = (".yaml", ".yml", ".json")

_FRONT_MATTER = re.compile(r"\A\ufeff?---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)(.*)\Z", re.DOTALL)
_META_LINE = re.compile(r"^([A-Za-z_][\w\-]*)\s*:\s?(.*)$")
_EXAMPLE_BLOCK = re.compile(r"<example>(.*?)</example>", re.DOTALL | re.IGNORECASE)
_USER_LINE = re.compile(r"^\s*user\s*:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
_COMMENTARY = re.compile(r"<commentary>(.*?)</commentary>", re.DOTALL | re.IGNORECASE)
_NEGATIVE_COMMENTARY = re.compile(
    r"\b(should not|shouldn't|do not|don't|not)\s+(use|trigger|launch|invoke)\b|\bnot appropriate\b",
    re.IGNORECASE,
)
_TRAILING_EXAMPLES_LABEL = re.compile(r"\s*examples?\s*:\s*$", re.IGNORECASE)

# marker for "use loading.timeout_seconds"; None means no deadline
CONFIGURED_TIMEOUT = object()


class RawRecord:
    """One unresolved record and where it came from"""

    __slots__ = ("origin", "data", "body", "error")

    def __init__(self, origin: str, data: Any, body: Optional[str] = None, error: Optional[str] = None):
        self.origin = origin
        self.data = data
        self.body = body
        self.error = error


def parse_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """
    Split a persona markdown file into its metadata block and body.

    The metadata block is parsed as YAML. Hand-written agent files often carry
    descriptions with unquoted colons that YAML rejects, so a line-oriented
    ``key: value`` reading is used when YAML parsing fails.

    Returns:
        (metadata, body); metadata is empty when the file has no block
    """
    match = _FRONT_MATTER.match(text)
    if not match:
        return {}, text

    block, body = match.group(1), match.group(2)

    try:
        metadata = yaml.safe_load(block)
    except yaml.YAMLError:
        metadata = None

    if not isinstance(metadata, dict):
        metadata = _parse_metadata_lines(block)

    return metadata, body.strip()


def _parse_metadata_lines(block: str) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {}
    current = None
    for line in block.splitlines():
        match = _META_LINE.match(line)
        if match and not line[:1].isspace():
            current = match.group(1)
            metadata[current] = match.group(2).strip()
        elif current is not None:
            # continuation of a multi-line value
            metadata[current] = f"{metadata[current]}\n{line.strip()}".strip()
    for key, value in metadata.items():
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            metadata[key] = value[1:-1]
    return metadata


def extract_embedded_examples(description: str) -> Tuple[str, List[Dict[str, Any]]]:
    """
    Pull ``<example>`` blocks out of a description.

    The ``user:`` line of each block is the trigger phrasing; a commentary
    saying the agent should not be used marks the example as negative.

    Returns:
        (description without the example blocks, trigger example mappings)
    """
    examples = []
    for block in _EXAMPLE_BLOCK.findall(description):
        user = _USER_LINE.search(block)
        if not user:
            continue
        text = user.group(1).strip().strip("\"'").strip()
        if not text:
            continue
        commentary = " ".join(_COMMENTARY.findall(block))
        examples.append({"text": text, "applies": not _NEGATIVE_COMMENTARY.search(commentary)})

    summary = _EXAMPLE_BLOCK.sub("", description)
    summary = "\n".join(line.rstrip() for line in summary.splitlines()).strip()
    # dangling "Examples:" left behind by the removed blocks
    summary = _TRAILING_EXAMPLES_LABEL.sub("", summary).strip()
    return summary, examples


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _coerce_examples(value: Any) -> List[Any]:
    # a single string is one example, commas included
    items = [value] if isinstance(value, str) else _as_list(value)
    examples = []
    for item in items:
        if isinstance(item, str):
            examples.append({"text": item.strip(), "applies": True})
        elif isinstance(item, Mapping):
            examples.append({
                "text": item.get("text") or item.get("example") or item.get("user"),
                "applies": bool(item.get("applies", True)),
            })
        else:
            examples.append({"text": None, "applies": True})
    return examples


_KNOWN_KEYS = {
    "name", "id", "description", "color", "colour", "triggers", "trigger_examples",
    "examples", "profile", "body", "prompt", "tags", "keywords",
}


def resolve_record(raw: RawRecord) -> Dict[str, Any]:
    """
    Map a raw record onto PersonaDefinition fields.

    Raises:
        MalformedDefinition: If the record is not a mapping or fails validation
    """
    if raw.error:
        raise MalformedDefinition(raw.origin, [raw.error])
    if not isinstance(raw.data, Mapping):
        raise MalformedDefinition(raw.origin, [f"record must be a mapping, got {type(raw.data).__name__}"])

    data = raw.data
    persona_id = data.get("name", data.get("id"))
    description = data.get("description")

    declared_keys = [k for k in ("trigger_examples", "triggers", "examples") if k in data]
    examples = _coerce_examples(data[declared_keys[0]]) if declared_keys else []
    if isinstance(description, str):
        description = description.replace("\\n", "\n")
        description, embedded = extract_embedded_examples(description)
        examples.extend(embedded)

    profile_body = raw.body
    if profile_body is None:
        profile_body = data.get("profile", data.get("body", data.get("prompt", "")))

    color = data.get("color", data.get("colour"))

    record = {
        "id": persona_id.strip() if isinstance(persona_id, str) else persona_id,
        "description": description,
        "trigger_examples": examples if examples or declared_keys else None,
        "color_tag": str(color) if color is not None else None,
        "profile_body": profile_body if profile_body is not None else "",
        "tags": [str(t) for t in _as_list(data.get("tags", data.get("keywords")))],
        "metadata": {k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        "origin": raw.origin,
    }

    issues = validate_persona_record(record)
    if issues:
        raise MalformedDefinition(raw.origin, issues)
    return record


def build_definition(record: Mapping[str, Any]) -> PersonaDefinition:
    """Turn a validated record into an immutable PersonaDefinition"""
    return PersonaDefinition(
        id=record["id"],
        description=record["description"],
        trigger_examples=tuple(
            TriggerExample(text=e["text"].strip(), applies=e.get("applies", True))
            for e in record["trigger_examples"]
        ),
        color_tag=record.get("color_tag"),
        profile_body=record.get("profile_body") or "",
        tags=tuple(record.get("tags") or ()),
        metadata=dict(record.get("metadata") or {}),
        origin=record.get("origin"),
    )


class PersonaDefinitionStore:
    """
    Loads persona definitions into immutable catalogs.

    A store holds no catalog itself; each call to ``load``/``reload`` returns a
    fresh Catalog, so readers holding an earlier one are never affected.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.logger = get_component_logger("Store")

    # -------------------------
    # Raw record sources
    # -------------------------
    def iter_raw_records(self, source: CatalogSource) -> Iterator[RawRecord]:
        """Produce the ordered raw records of a source"""
        if isinstance(source, (str, Path)):
            path = Path(source).expanduser()
            if not path.exists():
                raise CatalogNotFound(str(source))
            if path.is_dir():
                yield from self._iter_directory(path)
            else:
                yield from self._iter_file(path)
            return

        for i, item in enumerate(source):
            yield RawRecord(f"<record {i}>", item)

    def _iter_directory(self, directory: Path) -> Iterator[RawRecord]:
        pattern = self.settings.loading.file_pattern
        files = set(directory.glob(pattern))
        for suffix in CATALOG_SUFFIXES:
            files.update(directory.glob(f"*{suffix}"))
        for path in sorted(files):
            if path.is_file() and not path.name.startswith("."):
                yield from self._iter_file(path)

    def _iter_file(self, path: Path) -> Iterator[RawRecord]:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            yield RawRecord(str(path), None, error=f"unreadable file: {e}")
            return

        if path.suffix.lower() in CATALOG_SUFFIXES:
            try:
                data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
            except (ValueError, yaml.YAMLError) as e:
                yield RawRecord(str(path), None, error=f"unparseable catalog file: {e}")
                return
            if isinstance(data, Mapping) and "personas" in data:
                data = data["personas"]
            if not isinstance(data, list):
                yield RawRecord(str(path), None, error="catalog file must hold a list of personas")
                return
            for i, item in enumerate(data):
                yield RawRecord(f"{path}#{i}", item)
            return

        metadata, body = parse_front_matter(text)
        if not metadata:
            yield RawRecord(str(path), None, error="no metadata block")
            return
        yield RawRecord(str(path), metadata, body=body)

    # -------------------------
    # Public API
    # -------------------------
    def load(
        self,
        source: Optional[CatalogSource] = None,
        strict: Optional[bool] = None,
        timeout: Any = CONFIGURED_TIMEOUT,
    ) -> Catalog:
        """
        Load a catalog from ``source``.

        Args:
            source: Directory, file or iterable of mappings; defaults to the
                configured ``loading.source``
            strict: Abort on the first malformed record; defaults to
                ``loading.strict_mode``
            timeout: Deadline in seconds; ``None`` disables it, the default
                uses ``loading.timeout_seconds``

        Raises:
            MalformedDefinition: Strict mode and a record failed validation
            DuplicateId: Two valid records share an id
            LoadTimeout: The deadline passed before the load finished
            CatalogNotFound: The source path does not exist
            EmptyCatalog: No valid record and ``loading.allow_empty`` is off
        """
        if source is None:
            source = self.settings.loading.source
        if strict is None:
            strict = self.settings.loading.strict_mode
        if timeout is CONFIGURED_TIMEOUT:
            timeout = self.settings.loading.timeout_seconds

        label = str(source) if isinstance(source, (str, Path)) else f"<{type(source).__name__}>"
        deadline = time.monotonic() + timeout if timeout is not None else None
        self.logger.info(f"Loading persona catalog from {label} (strict={strict})")

        definitions: List[PersonaDefinition] = []
        origins: Dict[str, str] = {}
        rejected: List[RejectedRecord] = []
        resolved = 0

        for raw in self.iter_raw_records(source):
            if deadline is not None and time.monotonic() > deadline:
                self.logger.error(f"Load of {label} timed out after {resolved} record(s)")
                raise LoadTimeout(timeout, resolved)

            try:
                record = resolve_record(raw)
            except MalformedDefinition as e:
                if strict:
                    self.logger.error(str(e))
                    raise
                self.logger.warning(f"Skipping record: {e}")
                rejected.append(RejectedRecord(origin=raw.origin, reason="; ".join(e.issues)))
                continue
            resolved += 1

            persona_id = record["id"]
            if persona_id in origins:
                error = DuplicateId(persona_id, [origins[persona_id], raw.origin])
                self.logger.error(str(error))
                raise error
            origins[persona_id] = raw.origin
            definitions.append(build_definition(record))

        if deadline is not None and time.monotonic() > deadline:
            raise LoadTimeout(timeout, resolved)

        if not definitions and not self.settings.loading.allow_empty:
            self.logger.error(f"No valid persona definitions in {label}")
            raise EmptyCatalog(f"No valid persona definitions in {label} ({len(rejected)} rejected)")

        catalog = Catalog(definitions=tuple(definitions), source=label, rejected=tuple(rejected))
        self.logger.info(
            f"Loaded {len(catalog)} persona(s) from {label}"
            + (f", rejected {len(rejected)}" if rejected else "")
        )
        return catalog

    def reload(
        self,
        source: Optional[CatalogSource] = None,
        strict: Optional[bool] = None,
        timeout: Any = CONFIGURED_TIMEOUT,
    ) -> Catalog:
        """Build a replacement catalog; previous catalogs are left untouched"""
        self.logger.info("Reloading persona catalog")
        return self.load(source, strict=strict, timeout=timeout)
