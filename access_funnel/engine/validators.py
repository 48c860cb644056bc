"""Validator Set — one pure function per command kind.

Each validator receives the argument text that followed the command token and
returns Accepted or Rejected. The catalog refers to validators by name through
the VALIDATORS registry.
"""
from __future__ import annotations

import random
import re
from typing import TYPE_CHECKING

from access_funnel import messages
from access_funnel.types import Accepted, Rejected

if TYPE_CHECKING:
    from collections.abc import Callable

    from access_funnel.types import ValidationOutcome

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

_SOLANA_ADDRESS = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
_REFERRAL_CODE = re.compile(r"^PUSH-[A-Z0-9]+-[A-Z0-9]+$")

NO_REFERRAL = "NO"


def keyword(args: str) -> ValidationOutcome:
    """Payload-free command: only the command token itself is accepted."""
    if args.strip():
        return Rejected()
    return Accepted()


def solana_address(args: str) -> ValidationOutcome:
    address = extract_solana_address(args)
    if address is None:
        return Rejected(messages.WALLET_REJECTED)
    return Accepted(stored_response=address)


def referral_submission(args: str) -> ValidationOutcome:
    parts = args.split()
    if len(parts) != 1:
        return Rejected(messages.REFERRAL_REJECTED)
    code = parts[0].upper()
    if not is_valid_referral_code(code):
        return Rejected(messages.REFERRAL_REJECTED)
    return Accepted(stored_response=code)


VALIDATORS: dict[str, Callable[[str], ValidationOutcome]] = {
    "keyword": keyword,
    "solana_address": solana_address,
    "referral_submission": referral_submission,
}

# Validators whose accepted argument is stored instead of the raw line
PAYLOAD_VALIDATORS = frozenset({"solana_address", "referral_submission"})


# ─── Helpers ───

def is_valid_solana_address(address: str) -> bool:
    return bool(_SOLANA_ADDRESS.match(address))


def extract_solana_address(args: str) -> str | None:
    parts = args.split()
    if len(parts) != 1 or not is_valid_solana_address(parts[0]):
        return None
    return parts[0]


def is_valid_referral_code(code: str) -> bool:
    """Case-insensitive check for NO or a PUSH-<SEG>-<SEG> code."""
    upper = code.upper()
    return upper == NO_REFERRAL or bool(_REFERRAL_CODE.match(upper))


def example_solana_address(rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    length = rng.randint(32, 44)
    return "".join(rng.choice(BASE58_ALPHABET) for _ in range(length))
