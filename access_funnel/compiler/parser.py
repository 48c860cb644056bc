"""Parse YAML catalog definitions into an ordered Catalog."""
from __future__ import annotations

from pathlib import Path

import yaml

from access_funnel.engine.validators import PAYLOAD_VALIDATORS, VALIDATORS, example_solana_address
from access_funnel.errors import CatalogError
from access_funnel.types import Catalog, CommandSpec, Rejected

DEFAULT_CATALOG = Path(__file__).parent.parent / "catalogs" / "default.yaml"

_COMMAND_KEYS = frozenset({"id", "description", "hint", "validator", "success", "generates"})


def _unresolved(name: str):
    def validate(args: str) -> Rejected:
        return Rejected(f"Command cannot be verified right now (no validator named '{name}').")
    return validate


def _parse_raw_command(raw) -> CommandSpec:
    """Parse one catalog entry: either a bare id string or a mapping."""
    if isinstance(raw, str):
        raw = {"id": raw}
    if not isinstance(raw, dict):
        raise CatalogError(f"Invalid command entry: {raw!r}")

    unknown = set(raw) - _COMMAND_KEYS
    if unknown:
        raise CatalogError(f"Unknown command keys: {', '.join(sorted(unknown))}")

    command_id = str(raw.get("id") or "").strip().upper()
    if not command_id:
        raise CatalogError("Command entry is missing an id")

    validator_name = str(raw.get("validator") or "keyword")
    validate = VALIDATORS.get(validator_name) or _unresolved(validator_name)
    hint = str(raw.get("hint") or command_id.lower())
    if "{example_address}" in hint:
        hint = hint.replace("{example_address}", example_solana_address())

    generates = raw.get("generates")
    return CommandSpec(
        id=command_id,
        description=str(raw.get("description") or command_id),
        expected_input_hint=hint,
        validate=validate,
        validator_name=validator_name,
        success_message=raw.get("success"),
        generates=str(generates) if generates else None,
        takes_payload=validator_name in PAYLOAD_VALIDATORS,
    )


def parse_catalog_yaml(content: str) -> Catalog:
    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise CatalogError("Invalid YAML: expected a mapping")

    raw_commands = raw.get("commands")
    if not isinstance(raw_commands, list):
        raise CatalogError('Invalid catalog: missing "commands" list')

    commands = tuple(_parse_raw_command(item) for item in raw_commands)
    return Catalog(
        name=str(raw.get("name") or "unnamed catalog"),
        description=str(raw.get("description") or ""),
        commands=commands,
    )


def load_catalog(path: str | Path | None = None) -> Catalog:
    """Read, parse and statically check a catalog; the bundled one when no path is given."""
    from access_funnel.compiler.validator import format_errors, validate_catalog

    catalog_path = Path(path) if path else DEFAULT_CATALOG
    try:
        content = catalog_path.read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogError(f"Cannot read catalog {catalog_path}: {e}") from e

    catalog = parse_catalog_yaml(content)
    errors = [e for e in validate_catalog(catalog) if e.level == "error"]
    if errors:
        raise CatalogError(f'Catalog "{catalog.name}" failed validation:\n{format_errors(errors)}')
    return catalog
