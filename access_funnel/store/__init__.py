from access_funnel.store.client import ProgressStoreClient
from access_funnel.store.state import ProgressStore

__all__ = ["ProgressStore", "ProgressStoreClient"]
