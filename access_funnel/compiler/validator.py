"""Static analysis for command catalogs — catch issues before a session starts."""
from __future__ import annotations

from typing import TYPE_CHECKING

from access_funnel.engine.funnel import META_COMMANDS
from access_funnel.engine.validators import VALIDATORS

if TYPE_CHECKING:
    from access_funnel.types import Catalog

KNOWN_GENERATORS = frozenset({"referral_code"})


class ValidationError:
    def __init__(self, level: str, message: str, command: str | None = None):
        self.level = level  # "error" | "warning"
        self.message = message
        self.command = command

    def __str__(self):
        prefix = f"[{self.command}] " if self.command else ""
        return f"{self.level.upper()}: {prefix}{self.message}"


def validate_catalog(catalog: Catalog) -> list[ValidationError]:
    """Run all static checks on a catalog."""
    errors: list[ValidationError] = []

    if not catalog.commands:
        errors.append(ValidationError("error", "Catalog has no commands"))
        return errors

    errors.extend(_check_ids(catalog))
    errors.extend(_check_validators(catalog))
    errors.extend(_check_generators(catalog))

    return errors


def format_errors(errors: list[ValidationError]) -> str:
    if not errors:
        return ""
    lines = []
    errs = [e for e in errors if e.level == "error"]
    warns = [e for e in errors if e.level == "warning"]
    if errs:
        lines.append(f"  {len(errs)} error(s):")
        for e in errs:
            lines.append(f"    ✗ {e}")
    if warns:
        lines.append(f"  {len(warns)} warning(s):")
        for e in warns:
            lines.append(f"    ⚠ {e}")
    return "\n".join(lines)


# ─── Checks ───

def _check_ids(catalog: Catalog) -> list[ValidationError]:
    """Ids must be unique single tokens that do not shadow meta-commands."""
    errors: list[ValidationError] = []
    seen: set[str] = set()
    for command in catalog.commands:
        if any(ch.isspace() for ch in command.id):
            errors.append(ValidationError("error", "Command id contains whitespace", command.id))
        if command.id.lower() in META_COMMANDS:
            errors.append(ValidationError("error", "Command id collides with a meta-command", command.id))
        if command.id in seen:
            errors.append(ValidationError("error", "Duplicate command id", command.id))
        seen.add(command.id)
    return errors


def _check_validators(catalog: Catalog) -> list[ValidationError]:
    errors: list[ValidationError] = []
    for command in catalog.commands:
        if command.validator_name not in VALIDATORS:
            errors.append(ValidationError(
                "error", f"Unknown validator: '{command.validator_name}'", command.id
            ))
    return errors


def _check_generators(catalog: Catalog) -> list[ValidationError]:
    """At most one referral generator, and it should follow the wallet step."""
    errors: list[ValidationError] = []
    generators = [c for c in catalog.commands if c.generates]
    for command in generators:
        if command.generates not in KNOWN_GENERATORS:
            errors.append(ValidationError("error", f"Unknown generator: '{command.generates}'", command.id))
    if len(generators) > 1:
        errors.append(ValidationError("error", "More than one command generates a referral code"))

    wallet_positions = [i for i, c in enumerate(catalog.commands) if c.validator_name == "solana_address"]
    for i, command in enumerate(catalog.commands):
        if command.generates and (not wallet_positions or wallet_positions[0] > i):
            errors.append(ValidationError(
                "warning", "Referral code is generated before any wallet is collected", command.id
            ))
    return errors
