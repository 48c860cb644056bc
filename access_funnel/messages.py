"""Terminal text shown by the funnel. Presentation only."""
from __future__ import annotations

BOOT = """\
TERMINAL INTERFACE v1.0.3
------------------------
INITIALIZING SYSTEM...
[OK] Memory check complete
[OK] System integrity verified
[OK] Network protocols active
[!!] Security clearance required

SECURITY PROTOCOL: Access verification needed.
Enter commands in sequence to proceed.
Type 'help' for available commands."""

HELP_HEADER = """\
Available Commands:
------------------
help            : Display this help message
clear           : Clear terminal screen"""

UNKNOWN_COMMAND = '[ERROR] Unknown command. Type "help" for available commands.'
INVALID_INPUT = "[ERROR] Invalid input. Next required command: {expected_id}\nExpected format: {hint}"

COMMAND_ACCEPTED = "[SUCCESS] Command accepted: {description}"
NEXT_COMMAND = "[SYSTEM] Next required command: {command_id}"

COMPLETION_SEQUENCE = (
    "[SUCCESS] All security protocols verified.",
    "[SYSTEM] Neural interface synchronized.",
    "[SYSTEM] Quantum encryption enabled.",
    "[SYSTEM] Initializing main interface...",
)

WALLET_REJECTED = "Invalid Solana wallet address. Please provide a valid base58-encoded address."
REFERRAL_REJECTED = (
    'Invalid input... Please enter a valid referral code or type "NO" if you weren\'t referred.'
)


def help_listing(descriptions: list[tuple[str, str]]) -> str:
    lines = [HELP_HEADER]
    for command_id, description in descriptions:
        lines.append(f"{command_id.lower():<16}: {description}")
    return "\n".join(lines)
