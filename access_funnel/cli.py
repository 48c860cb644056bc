"""Thin CLI router — dispatches to commands and the MCP server."""
from __future__ import annotations

import os
import sys

USAGE = """\
access-funnel — ordered verification commands gating an application

Usage:
  funnel load [catalog.yaml]   Compile a command catalog, validate, output Mermaid diagram
  funnel play <session>        Run the funnel interactively for a session key
  funnel status [<session>]    Show one session's progress, or overall stats

Internal:
  funnel mcp-server            Start MCP Server
"""


def main():
    args = sys.argv[1:]
    cwd = os.getcwd()
    command = args[0] if args else None

    if command == "load":
        from access_funnel.commands.load import cmd_load
        cmd_load(args[1] if len(args) > 1 else None, cwd)

    elif command == "play":
        if len(args) < 2:
            print("Usage: funnel play <session>", file=sys.stderr)
            sys.exit(1)
        from access_funnel.commands.play import cmd_play
        cmd_play(args[1], cwd)

    elif command == "status":
        from access_funnel.commands.status import cmd_status
        cmd_status(args[1] if len(args) > 1 else None, cwd)

    elif command == "mcp-server":
        from access_funnel.integrations.mcp_server import run_server
        run_server()

    elif command in ("help", "--help", "-h", None):
        print(USAGE)

    else:
        print(f"Unknown command: {command}", file=sys.stderr)
        print(USAGE)
        sys.exit(1)
