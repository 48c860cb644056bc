"""Referral code generation: PUSH-<identity segment>-<random segment>."""
from __future__ import annotations

import re
import secrets
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import random

# Base58 upper-case letters and digits, no 0/O/I
SUFFIX_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZ"
SEGMENT_LENGTH = 4
FALLBACK_SEGMENT = "USER"


def identity_segment(identity: str, wallet: str = "") -> str:
    """First four alphanumerics of the identity (or wallet), upper-cased."""
    for source in (identity, wallet):
        clean = re.sub(r"[^A-Za-z0-9]", "", source or "")
        if clean:
            return clean[:SEGMENT_LENGTH].upper()
    return FALLBACK_SEGMENT


def generate_referral_code(
    identity: str,
    wallet: str = "",
    rng: random.Random | None = None,
) -> str:
    if rng is None:
        suffix = "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(SEGMENT_LENGTH))
    else:
        suffix = "".join(rng.choice(SUFFIX_ALPHABET) for _ in range(SEGMENT_LENGTH))
    return f"PUSH-{identity_segment(identity, wallet)}-{suffix}"
