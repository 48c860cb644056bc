"""funnel load [catalog.yaml] — compile the catalog, validate, output Mermaid diagram."""
from __future__ import annotations

import sys
from pathlib import Path

from access_funnel.compiler import format_errors, generate_mermaid, parse_catalog_yaml, validate_catalog
from access_funnel.compiler.parser import DEFAULT_CATALOG
from access_funnel.config import load_config
from access_funnel.errors import CatalogError


def cmd_load(catalog_file: str | None, cwd: str):
    config = load_config(cwd)
    catalog_path = Path(catalog_file) if catalog_file else (config.catalog_path or DEFAULT_CATALOG)

    if not catalog_path.exists():
        print(f"Catalog file not found: {catalog_path}", file=sys.stderr)
        sys.exit(1)

    try:
        catalog = parse_catalog_yaml(catalog_path.read_text(encoding="utf-8"))
    except CatalogError as e:
        print(f"✗ Parse error: {e}", file=sys.stderr)
        sys.exit(1)

    errors = validate_catalog(catalog)
    if any(e.level == "error" for e in errors):
        print(f'✗ Catalog "{catalog.name}" failed validation:')
        print(format_errors(errors))
        sys.exit(1)

    print(f'✓ Catalog "{catalog.name}" compiled ({len(catalog)} commands)')
    if errors:
        print(format_errors(errors))
    print()

    print("```mermaid")
    print(generate_mermaid(catalog))
    print("```")
