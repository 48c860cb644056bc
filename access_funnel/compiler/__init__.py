from access_funnel.compiler.mermaid import generate_mermaid
from access_funnel.compiler.parser import load_catalog, parse_catalog_yaml
from access_funnel.compiler.validator import format_errors, validate_catalog

__all__ = ["format_errors", "generate_mermaid", "load_catalog", "parse_catalog_yaml", "validate_catalog"]
