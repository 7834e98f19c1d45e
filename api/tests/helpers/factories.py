"""
Factory functions for test data.

Plain functions that build snapshot documents (camelCase, as produced by
an export) and accept overrides, making tests explicit about the shape
they exercise.

Usage:
    from tests.helpers.factories import make_snapshot, make_table_component

    def test_something():
        snapshot = make_snapshot(appEnvironments=[])
"""

from typing import Any

# Stable ids of the exporting installation, as they appear in snapshots
VERSION_ID = "v-1"
ENVIRONMENT_ID = "env-1"
SOURCE_ID = "ds-1"
QUERY_A_ID = "q-a"
QUERY_B_ID = "q-b"


def make_event(query_id: str, event_id: str = "onClick") -> dict[str, Any]:
    """Build an event binding that runs a query."""
    return {"eventId": event_id, "actionId": "run-query", "queryId": query_id}


def make_button_component(*events: dict[str, Any]) -> dict[str, Any]:
    return {
        "component": {
            "component": "Button",
            "definition": {
                "events": list(events),
                "properties": {"text": {"value": "Run"}},
            },
        }
    }


def make_table_component(
    column_events: dict[int, list[dict[str, Any]]] | None = None,
    action_events: list[dict[str, Any]] | None = None,
    component_type: str = "Table",
    column_count: int = 4,
) -> dict[str, Any]:
    """
    Build a table component.

    Args:
        column_events: Event lists by column index
        action_events: Events of the single table action, if any
        component_type: Component type, override to build a non-Table
            component with the same properties
        column_count: Number of columns
    """
    column_events = column_events or {}
    columns = [
        {"name": f"col{i}", "events": column_events.get(i, [])}
        for i in range(column_count)
    ]
    properties: dict[str, Any] = {"columns": {"value": columns}}
    if action_events is not None:
        properties["actions"] = {"value": [{"buttonText": "Edit", "events": action_events}]}

    return {
        "component": {
            "component": component_type,
            "definition": {"events": [], "properties": properties},
        }
    }


def make_definition(**components: dict[str, Any]) -> dict[str, Any]:
    return {"components": components}


def make_version(id: str = VERSION_ID, **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": id,
        "name": "v1",
        "definition": make_definition(
            button1=make_button_component(make_event(QUERY_A_ID)),
            table1=make_table_component(column_events={3: [make_event(QUERY_B_ID)]}),
        ),
    }
    data.update(overrides)
    return data


def make_environment(
    id: str = ENVIRONMENT_ID,
    version_id: str = VERSION_ID,
    **overrides: Any,
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": id,
        "versionId": version_id,
        "name": "production",
        "isDefault": True,
    }
    data.update(overrides)
    return data


def make_data_source(
    id: str = SOURCE_ID,
    version_id: str | None = VERSION_ID,
    **overrides: Any,
) -> dict[str, Any]:
    data: dict[str, Any] = {"id": id, "name": "postgres", "kind": "postgresql"}
    if version_id is not None:
        data["appVersionId"] = version_id
    data.update(overrides)
    return data


def make_data_source_options(
    source_id: str = SOURCE_ID,
    environment_id: str = ENVIRONMENT_ID,
    **overrides: Any,
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": f"dso-{source_id}-{environment_id}",
        "environmentId": environment_id,
        "dataSource": source_id,
        "options": {"host": {"value": "db.internal", "encrypted": False}},
    }
    data.update(overrides)
    return data


def make_query(
    id: str,
    source_id: str = SOURCE_ID,
    events: list[dict[str, Any]] | None = None,
    **overrides: Any,
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": id,
        "name": f"query_{id}",
        "kind": "postgresql",
        "dataSourceId": source_id,
        "options": {"query": "select 1", "events": events or []},
    }
    data.update(overrides)
    return data


def make_snapshot(**overrides: Any) -> dict[str, Any]:
    """
    Build a current-format snapshot.

    One version with one default environment, one data source with options
    in that environment, and two queries where A runs B on success. The
    version definition binds A to a button and B to column 3 of a table.
    """
    data: dict[str, Any] = {
        "app": {"id": "app-1", "name": "Inventory", "slug": "inventory", "isPublic": False},
        "currentVersionId": VERSION_ID,
        "appVersions": [make_version()],
        "appEnvironments": [make_environment()],
        "dataSources": [make_data_source()],
        "dataSourceOptions": [make_data_source_options()],
        "dataQueries": [
            make_query(QUERY_A_ID, events=[make_event(QUERY_B_ID, "onDataQuerySuccess")]),
            make_query(QUERY_B_ID),
        ],
        "exportVersion": "2.0",
    }
    data.update(overrides)
    return data


def make_legacy_snapshot(**overrides: Any) -> dict[str, Any]:
    """
    Build a snapshot in the oldest supported shape.

    App fields at the top level, no environments, no option entries, and
    data sources without a version carrying their options inline.
    """
    data: dict[str, Any] = {
        "id": "app-1",
        "name": "Legacy app",
        "currentVersionId": VERSION_ID,
        "appVersions": [make_version()],
        "dataSources": [
            make_data_source(
                version_id=None,
                options={"host": {"value": "a", "encrypted": False}},
            )
        ],
        "dataQueries": [
            make_query(QUERY_A_ID, events=[make_event(QUERY_B_ID, "onDataQuerySuccess")]),
            make_query(QUERY_B_ID),
        ],
    }
    data.update(overrides)
    return data
