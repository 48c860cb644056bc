"""access_funnel — ordered verification commands gating access to an application."""
from __future__ import annotations

__version__ = "0.1.0"
