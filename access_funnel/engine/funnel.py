"""Funnel Engine — ordered command state machine.

States: gated(i) for i in 0..N-1, then completed (absorbing). The engine owns
one FunnelState and one OutputLog; it never performs I/O. Accepted commands
are announced through the `emit` callback so a persistence worker can store
them without gating the user.
"""
from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from access_funnel import messages
from access_funnel.engine.output_log import OutputLog
from access_funnel.engine.referral import generate_referral_code
from access_funnel.errors import FunnelError, InvalidInput, UnknownCommand, ValidationRejected
from access_funnel.log import get_logger
from access_funnel.types import (
    CompletionRecord,
    CompletionReached,
    FunnelState,
    ProgressSaved,
    ReferralGenerated,
    ReferralSubmitted,
    Rejected,
)

if TYPE_CHECKING:
    import random
    from collections.abc import Callable, Iterable

    from access_funnel.types import Catalog, CommandSpec, FunnelEvent, ValidationOutcome

logger = get_logger(__name__)

GATED = "gated"
COMPLETED = "completed"

META_COMMANDS = frozenset({"help", "clear"})


# ─── Result type ───

class SubmitResult:
    def __init__(self, success: bool, message: str, index: int):
        self.success = success
        self.message = message
        self.index = index

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        return f"SubmitResult(success={self.success!r}, message={self.message!r}, index={self.index})"

    def to_dict(self) -> dict:
        return {"success": self.success, "message": self.message, "index": self.index}


# ─── Engine ───

class FunnelEngine:
    def __init__(
        self,
        catalog: Catalog,
        state: FunnelState | None = None,
        *,
        identity: str = "",
        referral_code: str | None = None,
        on_complete: Callable[[], Any] | None = None,
        emit: Callable[[FunnelEvent], Any] | None = None,
        boot: Iterable[str] = (messages.BOOT,),
        rng: random.Random | None = None,
    ):
        if not len(catalog):
            raise ValueError("Catalog has no commands")
        self.catalog = catalog
        self.state = state or FunnelState()
        self.log = OutputLog(boot)
        self.identity = identity
        self.events: list[FunnelEvent] = []
        self._referral_code = referral_code
        self._on_complete = on_complete
        self._emit = emit
        self._rng = rng
        self._notified = False

    @property
    def status(self) -> str:
        return COMPLETED if self.state.completion is not None else GATED

    @property
    def completed(self) -> bool:
        return self.state.completion is not None

    @property
    def expected(self) -> CommandSpec | None:
        if self.completed or self.state.current_index >= len(self.catalog):
            return None
        return self.catalog[self.state.current_index]

    def restore(self) -> None:
        """Render a resumed session: one echo/success pair per completed step, then the next prompt."""
        if self.state.completion is not None:
            logger.debug("Completion record found, skipping funnel")
            self._notify()
            return

        for command_id in self.state.completed:
            spec = self.catalog.find(command_id)
            if spec is None:
                continue
            response = self.state.responses.get(command_id)
            self.log.echo(spec.replay_echo(response))
            self.log.success(spec.success_text(response or ""))

        if self.state.current_index < len(self.catalog):
            self._prompt_next()
        else:
            # Progress reached the end but the completion mark never landed
            self._complete()

    def submit(self, raw_line: str) -> SubmitResult:
        line = raw_line.strip()
        parts = line.split(maxsplit=1)

        if parts and parts[0].lower() == "clear" and not self.completed:
            self.log.clear()
            return SubmitResult(True, "Terminal cleared", self.state.current_index)

        self.log.echo(raw_line.rstrip("\r\n"))
        try:
            return self._route(parts)
        except FunnelError as e:
            self.log.error(e)
            return SubmitResult(False, e.message, self.state.current_index)

    def referral_code(self) -> str:
        """The session's own referral code, generated once and reused afterwards."""
        if self._referral_code is None:
            self._referral_code = self._generated_response()
        if self._referral_code is None:
            wallet = self._response_for("solana_address") or ""
            self._referral_code = generate_referral_code(self.identity, wallet, rng=self._rng)
        return self._referral_code

    def completion_data(self) -> dict[str, Any]:
        return {
            "identity": self.identity or None,
            "wallet_address": self._response_for("solana_address"),
            "referral_code": self._response_for("referral_submission"),
            "generated_referral_code": self._generated_response(),
        }

    def get_status(self) -> dict[str, Any]:
        expected = self.expected
        total = len(self.catalog)
        result: dict[str, Any] = {
            "catalog": self.catalog.name,
            "status": self.status,
            "current_index": self.state.current_index,
            "total_commands": total,
            "completed_commands": list(self.state.completed),
            "next_command": expected.id if expected else None,
        }
        if expected:
            result["summary"] = f"{self.catalog.name} > {expected.id} ({self.state.current_index}/{total})"
        else:
            result["summary"] = f"{self.catalog.name} > completed ({total}/{total})"
        return result

    # ─── Private ───

    def _route(self, parts: list[str]) -> SubmitResult:
        if not parts or self.completed:
            raise UnknownCommand()

        token = parts[0]
        args = parts[1] if len(parts) > 1 else ""

        if token.lower() == "help":
            self.log.help(messages.help_listing([(c.id, c.description) for c in self.catalog]))
            return SubmitResult(True, "Help shown", self.state.current_index)

        expected = self.expected
        if expected is None:
            raise UnknownCommand()
        if token.upper() != expected.id:
            raise InvalidInput(expected.id, expected.expected_input_hint)

        outcome = expected.validate(args)
        if isinstance(outcome, Rejected):
            if outcome.reason is None:
                raise InvalidInput(expected.id, expected.expected_input_hint)
            raise ValidationRejected(outcome.reason)
        return self._accept(expected, " ".join(parts), outcome)

    def _accept(self, spec: CommandSpec, line: str, outcome: ValidationOutcome) -> SubmitResult:
        generated = spec.generates == "referral_code"
        if generated:
            response = self.referral_code()
            success_text = spec.success_text(response)
        else:
            response = outcome.stored_response if outcome.stored_response is not None else line
            success_text = outcome.success_text or spec.success_text(response)

        self.log.success(success_text)
        self.state.responses[spec.id] = response
        self.state.completed.append(spec.id)
        self.state.current_index += 1
        logger.debug("Accepted %s (index now %d)", spec.id, self.state.current_index)

        if generated:
            self._publish(ReferralGenerated(code=response))
        if spec.validator_name == "referral_submission" and response != "NO":
            self._publish(ReferralSubmitted(code=response))
        self._publish(ProgressSaved(
            command=spec.id,
            response=response,
            index=self.state.current_index,
            completed=tuple(self.state.completed),
            responses=dict(self.state.responses),
        ))

        if self.state.current_index >= len(self.catalog):
            self._complete()
            return SubmitResult(True, "Funnel completed", self.state.current_index)

        self._prompt_next()
        return SubmitResult(True, f"Advanced to: {self.catalog[self.state.current_index].id}", self.state.current_index)

    def _prompt_next(self) -> None:
        self.log.system(messages.NEXT_COMMAND.format(command_id=self.catalog[self.state.current_index].id))

    def _complete(self) -> None:
        for text in messages.COMPLETION_SEQUENCE:
            self.log.system(text)
        data = self.completion_data()
        self.state.completion = CompletionRecord(
            completed_at=datetime.now(tz=UTC).strftime("%Y-%m-%d %H:%M:%S"),
            completion_data=data,
        )
        logger.info("Funnel completed (%s)", self.identity or "anonymous")
        self._publish(CompletionReached(completion_data=data))
        self._notify()

    def _notify(self) -> None:
        if self._notified:
            return
        self._notified = True
        if self._on_complete is not None:
            self._on_complete()

    def _publish(self, event: FunnelEvent) -> None:
        self.events.append(event)
        if self._emit is not None:
            self._emit(event)

    def _response_for(self, validator_name: str) -> str | None:
        for spec in self.catalog:
            if spec.validator_name == validator_name and spec.id in self.state.responses:
                return self.state.responses[spec.id]
        return None

    def _generated_response(self) -> str | None:
        for spec in self.catalog:
            if spec.generates == "referral_code":
                return self.state.responses.get(spec.id)
        return None
