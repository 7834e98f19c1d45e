"""
Legacy snapshot normalization.

Every older export shape is adapted here, before any database work, so the
importer only ever sees the canonical AppSnapshot model:

- flat documents: app fields and currentVersionId at the top level, no
  "app" object
- data sources carrying their option bag inline ({"host": {"value": ...,
  "encrypted": false}}) instead of per-environment option entries
- snapshots without environments at all
- option entries naming their source as "dataSourceId" instead of
  "dataSource"
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from src.core.exceptions import InvalidSnapshotError
from src.models.contracts.app_import_export import AppSnapshot
from src.models.contracts.data_sources import DataSourceOption

COLLECTION_KEYS = (
    "appVersions",
    "appEnvironments",
    "dataSources",
    "dataSourceOptions",
    "dataQueries",
)
FLAT_APP_KEYS = ("id", "name", "slug", "isPublic", "createdAt", "updatedAt")


@dataclass
class NormalizedSnapshot:
    """A snapshot in canonical shape plus what its legacy parts still need."""

    snapshot: AppSnapshot
    # Inline data source options, keyed by the snapshot's data source id
    legacy_options: dict[str, list[DataSourceOption]] = field(default_factory=dict)
    # True when the snapshot has no environment entries at all
    synthesize_environments: bool = False


def convert_to_option_list(options: Mapping[str, Any]) -> list[DataSourceOption]:
    """
    Convert an inline option bag to an ordered list of options.

    Entries that are not objects are taken as plain, unencrypted values.
    """
    converted = []
    for key, entry in options.items():
        if isinstance(entry, Mapping):
            converted.append(
                DataSourceOption(
                    key=key,
                    value=entry.get("value"),
                    encrypted=bool(entry.get("encrypted", False)),
                )
            )
        else:
            converted.append(DataSourceOption(key=key, value=entry, encrypted=False))
    return converted


def _canonical_document(document: Mapping[str, Any]) -> dict[str, Any]:
    data = dict(document)

    for key in COLLECTION_KEYS:
        value = data.get(key)
        if value is None:
            data[key] = []
        elif not isinstance(value, list):
            raise InvalidSnapshotError(f"Invalid params for app import: '{key}' must be a list")

    app = data.get("app")
    if app is None:
        app = {key: data[key] for key in FLAT_APP_KEYS if key in data}
    elif not isinstance(app, Mapping):
        raise InvalidSnapshotError("Invalid params for app import: 'app' must be an object")
    data["app"] = dict(app)

    if data.get("currentVersionId") is None:
        data["currentVersionId"] = data["app"].get("currentVersionId")

    options_entries = []
    for entry in data["dataSourceOptions"]:
        if isinstance(entry, Mapping) and "dataSource" not in entry and "dataSourceId" in entry:
            entry = {**entry, "dataSource": entry["dataSourceId"]}
        options_entries.append(entry)
    data["dataSourceOptions"] = options_entries

    return data


def normalize_snapshot(document: Any) -> NormalizedSnapshot:
    """
    Validate an import document and adapt legacy shapes.

    Raises:
        InvalidSnapshotError: If the document is not an object, or its
            entries cannot be read as snapshot entries
    """
    if not isinstance(document, Mapping):
        raise InvalidSnapshotError()

    try:
        snapshot = AppSnapshot.model_validate(_canonical_document(document))
    except ValidationError as e:
        raise InvalidSnapshotError(
            f"Invalid params for app import: {e.error_count()} invalid field(s)"
        ) from e

    legacy_options = {
        source.id: convert_to_option_list(source.options)
        for source in snapshot.data_sources
        if source.options is not None
    }

    return NormalizedSnapshot(
        snapshot=snapshot,
        legacy_options=legacy_options,
        synthesize_environments=not snapshot.app_environments,
    )
