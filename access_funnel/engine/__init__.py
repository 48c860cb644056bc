from access_funnel.engine.funnel import FunnelEngine, SubmitResult
from access_funnel.engine.session import FunnelSession

__all__ = ["FunnelEngine", "FunnelSession", "SubmitResult"]
