"""
DeployWatch Common Module

Shared infrastructure: configuration, the document store client and the
canonical deployment schemas.
"""

from .config import DeployWatchConfig, load_config
from .store_client import ElasticsearchStore, RecordStore, StoreError

__all__ = [
    "DeployWatchConfig",
    "load_config",
    "ElasticsearchStore",
    "RecordStore",
    "StoreError",
]
