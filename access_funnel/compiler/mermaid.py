"""Generate a Mermaid flowchart from a Catalog."""
from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from access_funnel.types import Catalog


def _make_id(index: int, name: str) -> str:
    clean = re.sub(r"[^a-zA-Z0-9_]", "_", name)
    clean = re.sub(r"_+", "_", clean).strip("_")
    return f"n{index}_{clean}"


def generate_mermaid(catalog: Catalog) -> str:
    nodes: list[str] = []
    edges: list[str] = []
    ids: list[str] = []

    for i, command in enumerate(catalog.commands, 1):
        sid = _make_id(i, command.id)
        ids.append(sid)
        label = command.id.replace('"', "'")
        if command.takes_payload:
            # Payload checked by a validator → parallelogram
            nodes.append(f'    {sid}[/"{label}"/]')
        elif command.generates:
            # Engine-generated response → stadium
            nodes.append(f'    {sid}(["{label}"])')
        else:
            nodes.append(f'    {sid}["{label}"]')

    nodes.append('    done(("unlocked"))')
    ids.append("done")

    for src, dst in zip(ids, ids[1:], strict=False):
        edges.append(f"    {src} --> {dst}")

    lines = ["graph TD"]
    lines.extend(nodes)
    lines.extend(edges)
    return "\n".join(lines)
