"""
Deployment Record Schema

Canonical shape of "what is deployed where". Every environment maps project
names to a ProjectRecord, which is either a flat attribute set or a mapping
of role name to attribute set. The topology is carried as an explicit tag.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# Only these attributes survive filtering
RECOGNIZED_ATTRIBUTES = ("branch", "release_timestamp", "current_revision", "deploy_user")


# ============================================================================
# Canonical record
# ============================================================================

class Topology(str, Enum):
    """How a project's attributes are laid out"""
    FLAT = "flat"  # project -> attributes
    ROLES = "roles"  # project -> role -> attributes


class AttributeSet(BaseModel):
    """Recognized deployment attributes; anything else is dropped"""
    model_config = ConfigDict(extra="ignore")

    branch: Optional[str] = None
    release_timestamp: Optional[str] = None
    current_revision: Optional[str] = None
    deploy_user: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "AttributeSet":
        """Build from a raw attribute map, keeping recognized keys as strings"""
        return cls(**{
            key: str(value)
            for key, value in raw.items()
            if key in RECOGNIZED_ATTRIBUTES and value is not None
        })

    @property
    def is_empty(self) -> bool:
        return not self.present()

    def present(self) -> Dict[str, str]:
        """Attributes that carry a value"""
        return self.model_dump(exclude_none=True)

    def sorted_items(self) -> List[Tuple[str, str]]:
        """Present attributes sorted by key name"""
        return sorted(self.present().items())


class ProjectRecord(BaseModel):
    """Merged deployment facts for one project"""
    topology: Topology
    attributes: AttributeSet = Field(default_factory=AttributeSet)
    roles: Dict[str, AttributeSet] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        if self.topology == Topology.ROLES:
            return not self.roles
        return self.attributes.is_empty

    def attribute_sets(self) -> List[Tuple[Optional[str], AttributeSet]]:
        """(role, attributes) pairs; role is None for flat projects"""
        if self.topology == Topology.ROLES:
            return list(self.roles.items())
        return [(None, self.attributes)]


class MergedRecord(BaseModel):
    """All projects deployed to one environment"""
    environment: str
    projects: Dict[str, ProjectRecord] = Field(default_factory=dict)
    fetch_failed: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.projects

    def __contains__(self, project: str) -> bool:
        return project in self.projects

    def __getitem__(self, project: str) -> ProjectRecord:
        return self.projects[project]


# ============================================================================
# Per-query values
# ============================================================================

@dataclass
class DeploymentRequest:
    """Parsed chat command"""
    environment: str
    project: Optional[str] = None
    extended: bool = False
    requester: str = ""
    target: str = ""
    raw_text: str = ""


@dataclass
class FetchResult:
    """Documents fetched for an environment, or the reason the fetch failed"""
    documents: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None
