from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from access_funnel.messages import COMMAND_ACCEPTED

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from access_funnel.errors import FunnelError

_PLACEHOLDER = re.compile(r"\{(response|description)\}")

# ─── Validator outcomes ───

@dataclass(frozen=True)
class Accepted:
    stored_response: str | None = None  # None = store the raw input line
    success_text: str | None = None     # None = catalog/default success text


@dataclass(frozen=True)
class Rejected:
    reason: str | None = None  # None = report the expected input format


ValidationOutcome = Accepted | Rejected

# ─── Command Catalog (parsed from YAML) ───

@dataclass(frozen=True)
class CommandSpec:
    id: str
    description: str
    expected_input_hint: str
    validate: Callable[[str], ValidationOutcome]
    validator_name: str = "keyword"
    success_message: str | None = None  # may reference {response} and {description}
    generates: str | None = None        # "referral_code" → engine produces the stored response
    takes_payload: bool = False

    def success_text(self, response: str = "") -> str:
        # Only {response} and {description} are substituted; other braces are literal
        values = {"response": response, "description": self.description}
        template = self.success_message or COMMAND_ACCEPTED
        return _PLACEHOLDER.sub(lambda m: values[m.group(1)], template)

    def replay_echo(self, response: str | None) -> str:
        """Rebuild the command line a stored response was accepted from."""
        if not response or self.generates:
            return self.id.lower()
        if self.takes_payload:
            return f"{self.id.lower()} {response}"
        return response


@dataclass(frozen=True)
class Catalog:
    name: str
    commands: tuple[CommandSpec, ...] = ()
    description: str = ""

    def __len__(self) -> int:
        return len(self.commands)

    def __iter__(self) -> Iterator[CommandSpec]:
        return iter(self.commands)

    def __getitem__(self, index: int) -> CommandSpec:
        return self.commands[index]

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(c.id for c in self.commands)

    def find(self, command_id: str) -> CommandSpec | None:
        wanted = command_id.upper()
        for c in self.commands:
            if c.id == wanted:
                return c
        return None

# ─── Funnel runtime state ───

@dataclass(frozen=True)
class CompletionRecord:
    completed_at: str
    completion_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class FunnelState:
    current_index: int = 0
    completed: list[str] = field(default_factory=list)
    responses: dict[str, str] = field(default_factory=dict)
    completion: CompletionRecord | None = None

    def to_progress(self) -> dict[str, Any]:
        return {
            "current_command_index": self.current_index,
            "completed_commands": list(self.completed),
            "command_responses": dict(self.responses),
        }

    @classmethod
    def from_loaded(cls, loaded: dict[str, Any] | None, catalog: Catalog) -> FunnelState:
        """Build state from a LoadState payload, keeping only the longest valid catalog prefix."""
        loaded = loaded or {}
        state = cls()

        completion = loaded.get("completion")
        if isinstance(completion, dict):
            data = completion.get("completion_data")
            state.completion = CompletionRecord(
                completed_at=str(completion.get("completed_at") or ""),
                completion_data=data if isinstance(data, dict) else {},
            )
            state.current_index = len(catalog)
            state.completed = list(catalog.ids)
            return state

        progress = loaded.get("progress")
        if not isinstance(progress, dict):
            return state

        raw_completed = progress.get("completed_commands") or []
        if not isinstance(raw_completed, list):
            raw_completed = []
        completed: list[str] = []
        for expected, got in zip(catalog.ids, raw_completed, strict=False):
            if not isinstance(got, str) or got.upper() != expected:
                break
            completed.append(expected)

        raw_index = progress.get("current_command_index")
        if isinstance(raw_index, int) and 0 <= raw_index < len(completed):
            completed = completed[:raw_index]

        raw_responses = progress.get("command_responses") or {}
        responses: dict[str, str] = {}
        if isinstance(raw_responses, dict):
            for key, value in raw_responses.items():
                if isinstance(key, str) and key.upper() in completed and value is not None:
                    responses[key.upper()] = str(value)

        state.completed = completed
        state.current_index = len(completed)
        state.responses = responses
        return state

# ─── Output Log ───

class EntryKind(str, Enum):
    BOOT = "boot"
    ECHO = "echo"
    SUCCESS = "success"
    ERROR = "error"
    SYSTEM = "system"
    HELP = "help"


@dataclass(frozen=True)
class LogEntry:
    kind: EntryKind
    text: str = ""
    error: FunnelError | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "text": self.text}

# ─── Persistence events (engine → persistence worker) ───

@dataclass(frozen=True)
class ProgressSaved:
    command: str
    response: str
    index: int
    completed: tuple[str, ...]
    responses: dict[str, str]


@dataclass(frozen=True)
class CompletionReached:
    completion_data: dict[str, Any]


@dataclass(frozen=True)
class ReferralGenerated:
    code: str


@dataclass(frozen=True)
class ReferralSubmitted:
    code: str


FunnelEvent = ProgressSaved | CompletionReached | ReferralGenerated | ReferralSubmitted
