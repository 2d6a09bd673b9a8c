"""
Record Merger

Fetches the deployment documents of an environment and merges them into one
canonical record per project. Documents may be fragmented: a project maps to
one or more grouping keys, each holding part of the attributes, and
role-partitioned projects add one more level (project -> role -> grouping).

Merge rules:
- Documents are applied in the order the store returns them; later values win
- A project's topology is fixed by the first document contributing to it
- Only recognized attributes survive; empty projects and roles are dropped
"""

import logging
from typing import Any, Dict, Mapping, Optional

from ..common.schemas import (
    AttributeSet,
    FetchResult,
    MergedRecord,
    ProjectRecord,
    Topology,
)
from ..common.store_client import RecordStore, StoreError

logger = logging.getLogger("deploywatch.lookup.merger")


def detect_topology(entry: Mapping[str, Any]) -> Topology:
    """
    Role-partitioned when every mapping value holds only mappings
    (role -> grouping -> attributes). A single nested value inside an
    attribute fragment does not make the project role-partitioned.
    """
    nested = [value for value in entry.values() if isinstance(value, Mapping)]
    if not nested:
        return Topology.FLAT
    for value in nested:
        if not value or not all(isinstance(v, Mapping) for v in value.values()):
            return Topology.FLAT
    return Topology.ROLES


def flatten_fragments(entry: Mapping[str, Any]) -> Dict[str, Any]:
    """Union the attribute fragments of one entry, right-biased"""
    combined: Dict[str, Any] = {}
    for key, value in entry.items():
        if isinstance(value, Mapping):
            combined.update(value)
        else:
            combined[key] = value
    return combined


class RecordMerger:
    """
    Builds the MergedRecord of an environment.

    Store failures never propagate: they are logged and reported through
    MergedRecord.fetch_failed with no projects.
    """

    def __init__(self, store: RecordStore):
        """
        Initialize merger.

        Args:
            store: Source of raw deployment documents
        """
        self._store = store

    async def fetch(self, environment: str) -> FetchResult:
        """Fetch raw documents, turning store errors into a failed result"""
        try:
            documents = await self._store.fetch(environment)
        except StoreError as e:
            logger.error("can't search in elastic due: %s", e)
            return FetchResult(error=str(e))
        return FetchResult(documents=list(documents))

    async def collect(self, environment: str) -> MergedRecord:
        """
        Fetch and merge everything deployed to an environment.

        Args:
            environment: Environment identifier

        Returns:
            MergedRecord, empty when nothing was found or the fetch failed
        """
        result = await self.fetch(environment)
        if result.failed:
            return MergedRecord(environment=environment, fetch_failed=True)
        return self.merge(environment, result.documents)

    def merge(self, environment: str, documents) -> MergedRecord:
        """Merge raw documents into a filtered MergedRecord"""
        raw_projects: Dict[str, Dict[str, Any]] = {}
        topologies: Dict[str, Topology] = {}

        for document in documents:
            for project, entry in document.items():
                logger.debug("proj: %s, params: %r", project, entry)
                if not isinstance(entry, Mapping) or not entry:
                    raw_projects.setdefault(project, {})
                    continue

                topology = detect_topology(entry)
                established = topologies.setdefault(project, topology)
                if topology != established:
                    logger.warning(
                        "skipping %s entry for %s, project is %s",
                        topology.value, project, established.value,
                    )
                    continue

                merged = raw_projects.setdefault(project, {})
                if topology == Topology.ROLES:
                    for role, role_entry in entry.items():
                        if not isinstance(role_entry, Mapping):
                            logger.warning("ignoring non-role key %s under %s", role, project)
                            continue
                        merged.setdefault(role, {}).update(flatten_fragments(role_entry))
                else:
                    merged.update(flatten_fragments(entry))

        record = MergedRecord(environment=environment)
        for project, merged in raw_projects.items():
            project_record = self._build_project(project, topologies.get(project), merged)
            if project_record is None:
                logger.error("no params for %s", project)
                continue
            record.projects[project] = project_record

        return record

    def _build_project(
        self,
        project: str,
        topology: Optional[Topology],
        merged: Dict[str, Any],
    ) -> Optional[ProjectRecord]:
        """Filter a merged project entry; None when nothing recognized is left"""
        if topology is None:
            return None

        if topology == Topology.ROLES:
            roles = {}
            for role, attributes in merged.items():
                attribute_set = AttributeSet.from_raw(attributes)
                if attribute_set.is_empty:
                    logger.error("no params for %s/%s", project, role)
                    continue
                roles[role] = attribute_set
            project_record = ProjectRecord(topology=topology, roles=roles)
        else:
            project_record = ProjectRecord(
                topology=topology,
                attributes=AttributeSet.from_raw(merged),
            )

        if project_record.is_empty:
            return None
        return project_record
