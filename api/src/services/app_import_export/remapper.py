"""
Reference remapping for imported applications.

Old ids from the snapshot are mapped to the ids created during import with
plain dict tables, one per entity kind. Event bindings embedded in query
options and version definitions are rewritten in a separate pass over deep
copies of those JSON trees; shared objects are never mutated in place.

Event binding locations inside a definition:
    components.<id>.component.definition.events
    components.<id>.component.definition.properties.actions.value[*].events
    components.<id>.component.definition.properties.columns.value[*].events  (Table only)
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator
from uuid import UUID

logger = logging.getLogger(__name__)

TABLE_COMPONENT = "Table"


@dataclass
class ReferenceMap:
    """Old-id -> new-id tables for one import.

    Environments, data sources and queries are recorded per version (keyed
    by the snapshot's version id): snapshots without version affinity on
    their data sources get one copy of each source and query per version.
    """

    versions: dict[str, UUID] = field(default_factory=dict)
    default_environments: dict[str, UUID] = field(default_factory=dict)
    environments: dict[str, dict[str, UUID]] = field(default_factory=dict)
    data_sources: dict[str, dict[str, UUID]] = field(default_factory=dict)
    data_queries: dict[str, dict[str, UUID]] = field(default_factory=dict)

    def environments_for(self, version_key: str) -> dict[str, UUID]:
        return self.environments.setdefault(version_key, {})

    def data_sources_for(self, version_key: str) -> dict[str, UUID]:
        return self.data_sources.setdefault(version_key, {})

    def data_queries_for(self, version_key: str) -> dict[str, UUID]:
        return self.data_queries.setdefault(version_key, {})

    def query_ids_for(self, version_key: str) -> dict[str, str]:
        """Query table of a version as strings, the form ids take inside JSON."""
        return {old: str(new) for old, new in self.data_queries_for(version_key).items()}


def remap_events(events: list[Any], query_ids: dict[str, str]) -> list[Any]:
    """
    Return a copy of an event list with mapped queryIds replaced.

    Bindings without a queryId, or whose queryId is not in the table, are
    kept as they are.
    """
    remapped = []
    for event in events:
        if isinstance(event, dict) and event.get("queryId"):
            event = dict(event)
            new_id = query_ids.get(str(event["queryId"]))
            if new_id is not None:
                event["queryId"] = new_id
            else:
                logger.debug(f"Unresolved queryId {event['queryId']} left in event binding")
        remapped.append(event)
    return remapped


def remap_query_options(
    options: dict[str, Any] | None,
    query_ids: dict[str, str],
) -> dict[str, Any] | None:
    """Return a copy of query options with their event bindings remapped."""
    if not options:
        return options

    remapped = copy.deepcopy(options)
    if isinstance(remapped.get("events"), list):
        remapped["events"] = remap_events(remapped["events"], query_ids)
    return remapped


def _property_value(properties: dict[str, Any], name: str) -> Any:
    prop = properties.get(name)
    return prop.get("value") if isinstance(prop, dict) else None


def _event_holders(definition: dict[str, Any] | None) -> Iterator[dict[str, Any]]:
    """Yield every dict of a definition that carries an event list."""
    if not isinstance(definition, dict):
        return
    components = definition.get("components")
    if not isinstance(components, dict):
        return

    for entry in components.values():
        component = entry.get("component") if isinstance(entry, dict) else None
        if not isinstance(component, dict):
            continue
        component_definition = component.get("definition")
        if not isinstance(component_definition, dict):
            continue

        if isinstance(component_definition.get("events"), list):
            yield component_definition

        properties = component_definition.get("properties") or {}
        if not isinstance(properties, dict):
            continue

        actions = _property_value(properties, "actions")
        if isinstance(actions, list):
            for action in actions:
                if isinstance(action, dict) and isinstance(action.get("events"), list):
                    yield action

        if component.get("component") == TABLE_COMPONENT:
            columns = _property_value(properties, "columns")
            if isinstance(columns, list):
                for column in columns:
                    if isinstance(column, dict) and isinstance(column.get("events"), list):
                        yield column


def remap_definition(
    definition: dict[str, Any] | None,
    query_ids: dict[str, str],
) -> dict[str, Any] | None:
    """Return a copy of a version definition with every event binding remapped."""
    if not definition:
        return definition

    remapped = copy.deepcopy(definition)
    for holder in _event_holders(remapped):
        holder["events"] = remap_events(holder["events"], query_ids)
    return remapped
