"""
DeployWatch Deployment Schemas

Canonical per-environment deployment record and per-query values.
"""

from .deployment import (
    RECOGNIZED_ATTRIBUTES,
    AttributeSet,
    DeploymentRequest,
    FetchResult,
    MergedRecord,
    ProjectRecord,
    Topology,
)

__all__ = [
    "RECOGNIZED_ATTRIBUTES",
    "AttributeSet",
    "DeploymentRequest",
    "FetchResult",
    "MergedRecord",
    "ProjectRecord",
    "Topology",
]
