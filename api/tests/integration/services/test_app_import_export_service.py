"""
Integration tests for AppImportExportService.

Runs export and import against a real (SQLite) database through the
service's own sessions and inspects the committed rows.
"""

from typing import Any
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import AppNotFoundError, InvalidSnapshotError, SlugAssignmentError
from src.models.contracts.app_import_export import SNAPSHOT_EXPORT_VERSION
from src.models.orm import (
    AppEnvironment,
    AppGroupPermission,
    Application,
    AppVersion,
    Credential,
    DataQuery,
    DataSource,
    DataSourceOptions,
    GroupPermission,
    Organization,
)
from src.services.app_import_export import AppImportExportService
from src.services.data_source_options import resolve_options
from tests.helpers.definitions import iter_definition_query_ids, iter_option_query_ids
from tests.helpers.factories import (
    QUERY_A_ID,
    QUERY_B_ID,
    make_data_source,
    make_data_source_options,
    make_environment,
    make_event,
    make_legacy_snapshot,
    make_query,
    make_snapshot,
    make_version,
)

pytestmark = pytest.mark.integration


@pytest.fixture
def service(session_factory) -> AppImportExportService:
    return AppImportExportService(session_factory)


# ==================== HELPERS ====================


async def _count(session: AsyncSession, model, *where) -> int:
    result = await session.execute(select(func.count()).select_from(model).where(*where))
    return result.scalar_one()


async def _graph(session: AsyncSession, app_id: UUID) -> dict[str, list[Any]]:
    """Load every row of an application graph, each kind in creation order."""
    versions = (
        await session.execute(
            select(AppVersion).where(AppVersion.app_id == app_id).order_by(AppVersion.created_at)
        )
    ).scalars().all()
    version_ids = [v.id for v in versions]

    environments = (
        await session.execute(
            select(AppEnvironment).where(AppEnvironment.app_version_id.in_(version_ids))
        )
    ).scalars().all()
    data_sources = (
        await session.execute(select(DataSource).where(DataSource.app_version_id.in_(version_ids)))
    ).scalars().all()
    source_ids = [s.id for s in data_sources]
    queries = (
        await session.execute(select(DataQuery).where(DataQuery.data_source_id.in_(source_ids)))
    ).scalars().all()
    options = (
        await session.execute(
            select(DataSourceOptions).where(DataSourceOptions.data_source_id.in_(source_ids))
        )
    ).scalars().all()

    return {
        "versions": list(versions),
        "environments": list(environments),
        "data_sources": list(data_sources),
        "queries": list(queries),
        "options": list(options),
    }


def _referenced_query_ids(graph: dict[str, list[Any]]) -> list[str]:
    referenced = []
    for version in graph["versions"]:
        referenced.extend(iter_definition_query_ids(version.definition))
    for query in graph["queries"]:
        referenced.extend(iter_option_query_ids(query.options))
    return referenced


def _column_events(version: AppVersion, component: str, column: int) -> list[dict[str, Any]]:
    definition = version.definition["components"][component]["component"]["definition"]
    return definition["properties"]["columns"]["value"][column]["events"]


def _two_version_snapshot() -> dict[str, Any]:
    """Two versions, each with its own environment, source and query."""
    return make_snapshot(
        currentVersionId="v-1",
        appVersions=[
            make_version("v-1", name="v1", definition={}),
            make_version("v-2", name="v2", definition={}),
        ],
        appEnvironments=[
            make_environment("env-1", "v-1"),
            make_environment("env-2", "v-2"),
        ],
        dataSources=[
            make_data_source("ds-1", "v-1"),
            make_data_source("ds-2", "v-2"),
        ],
        dataSourceOptions=[
            make_data_source_options("ds-1", "env-1"),
            make_data_source_options("ds-2", "env-2"),
        ],
        dataQueries=[
            make_query("q-1", "ds-1"),
            make_query("q-2", "ds-2"),
        ],
    )


# ==================== IMPORT ====================


class TestImportApp:

    async def test_creates_graph(self, service, db_session, org_id):
        app = await service.import_app(org_id, make_snapshot())

        graph = await _graph(db_session, app.id)
        assert app.name == "Inventory"
        assert app.organization_id == org_id
        assert app.is_public is False
        assert len(graph["versions"]) == 1
        assert len(graph["environments"]) == 1
        assert len(graph["data_sources"]) == 1
        assert len(graph["options"]) == 1
        assert len(graph["queries"]) == 2
        assert graph["options"][0].options == {"host": {"value": "db.internal", "encrypted": False}}
        assert graph["options"][0].environment_id == graph["environments"][0].id

    async def test_records_importing_user(self, service, db_session, org_id):
        user_id = uuid4()

        app = await service.import_app(org_id, make_snapshot(), user_id=user_id)

        assert app.created_by == user_id

    async def test_slug_equals_id(self, service, db_session, org_id):
        app = await service.import_app(org_id, make_snapshot())

        stored = await db_session.get(Application, app.id)
        assert app.slug == str(app.id)
        assert stored.slug == str(app.id)

    async def test_maps_current_version(self, service, db_session, org_id):
        app = await service.import_app(org_id, _two_version_snapshot())

        current = await db_session.get(AppVersion, app.current_version_id)
        assert current.name == "v1"
        assert current.app_id == app.id

    async def test_last_version_is_most_recently_updated(self, service, db_session, org_id):
        app = await service.import_app(org_id, _two_version_snapshot())

        graph = await _graph(db_session, app.id)
        by_name = {v.name: v for v in graph["versions"]}
        assert by_name["v2"].updated_at >= max(v.updated_at for v in graph["versions"])

    async def test_versions_keep_their_own_children(self, service, db_session, org_id):
        app = await service.import_app(org_id, _two_version_snapshot())

        graph = await _graph(db_session, app.id)
        for version in graph["versions"]:
            environments = [e for e in graph["environments"] if e.app_version_id == version.id]
            sources = [s for s in graph["data_sources"] if s.app_version_id == version.id]
            assert len(environments) == 1
            assert len(sources) == 1
            queries = [q for q in graph["queries"] if q.data_source_id == sources[0].id]
            options = [o for o in graph["options"] if o.data_source_id == sources[0].id]
            assert len(queries) == 1
            assert len(options) == 1
            assert options[0].environment_id == environments[0].id

    async def test_remaps_table_column_event(self, service, db_session, org_id):
        app = await service.import_app(org_id, make_snapshot())

        graph = await _graph(db_session, app.id)
        query_b = next(q for q in graph["queries"] if q.name == f"query_{QUERY_B_ID}")
        version = graph["versions"][0]
        assert _column_events(version, "table1", 3)[0]["queryId"] == str(query_b.id)
        assert _column_events(version, "table1", 2) == []

    async def test_remaps_query_to_query_reference(self, service, db_session, org_id):
        app = await service.import_app(org_id, make_snapshot())

        graph = await _graph(db_session, app.id)
        queries = {q.name: q for q in graph["queries"]}
        query_a = queries[f"query_{QUERY_A_ID}"]
        query_b = queries[f"query_{QUERY_B_ID}"]
        assert query_a.options["events"][0]["queryId"] == str(query_b.id)
        assert QUERY_B_ID not in _referenced_query_ids(graph)
        assert QUERY_A_ID not in _referenced_query_ids(graph)

    async def test_keeps_unresolved_query_reference(self, service, db_session, org_id):
        document = make_snapshot(
            dataQueries=[make_query(QUERY_A_ID, events=[make_event("q-deleted")])]
        )

        app = await service.import_app(org_id, document)

        graph = await _graph(db_session, app.id)
        assert graph["queries"][0].options["events"][0]["queryId"] == "q-deleted"

    async def test_skips_queries_of_unknown_sources(self, service, db_session, org_id):
        document = make_snapshot(
            dataQueries=[make_query(QUERY_A_ID), make_query("q-orphan", source_id="ds-gone")]
        )

        app = await service.import_app(org_id, document)

        graph = await _graph(db_session, app.id)
        assert [q.name for q in graph["queries"]] == [f"query_{QUERY_A_ID}"]

    async def test_public_flag_is_not_imported(self, service, db_session, org_id):
        document = make_snapshot(app={"name": "Inventory", "isPublic": True})

        app = await service.import_app(org_id, document)

        assert app.is_public is False

    async def test_empty_snapshot(self, service, db_session, org_id):
        app = await service.import_app(org_id, {"app": {"name": "Empty"}})

        graph = await _graph(db_session, app.id)
        assert app.current_version_id is None
        assert graph["versions"] == []

    async def test_environment_without_default_uses_first(self, service, db_session, org_id):
        document = make_snapshot(
            appEnvironments=[
                make_environment("env-staging", name="staging", isDefault=False),
                make_environment("env-1", name="production", isDefault=False),
            ],
            dataSourceOptions=[make_data_source_options("ds-1", "env-1")],
        )

        app = await service.import_app(org_id, document)

        graph = await _graph(db_session, app.id)
        by_name = {e.name: e for e in graph["environments"]}
        assert set(by_name) == {"staging", "production"}
        assert graph["options"][0].environment_id == by_name["production"].id

    async def test_repeated_option_entries_each_get_a_row(self, service, db_session, org_id):
        document = make_snapshot(
            dataSourceOptions=[
                make_data_source_options("ds-1", "env-1"),
                make_data_source_options(
                    "ds-1", "env-1", options={"host": {"value": "replica", "encrypted": False}}
                ),
            ]
        )

        app = await service.import_app(org_id, document)

        graph = await _graph(db_session, app.id)
        assert sorted(o.options["host"]["value"] for o in graph["options"]) == [
            "db.internal",
            "replica",
        ]
        assert {o.environment_id for o in graph["options"]} == {graph["environments"][0].id}


# ==================== LEGACY SNAPSHOTS ====================


class TestImportLegacySnapshot:

    async def test_synthesizes_one_default_environment_per_version(
        self, service, db_session, org_id
    ):
        document = make_legacy_snapshot(
            appVersions=[make_version("v-1", name="v1"), make_version("v-2", name="v2")]
        )

        app = await service.import_app(org_id, document)

        graph = await _graph(db_session, app.id)
        assert len(graph["versions"]) == 2
        assert len(graph["environments"]) == 2
        for version in graph["versions"]:
            environments = [e for e in graph["environments"] if e.app_version_id == version.id]
            assert [(e.name, e.is_default) for e in environments] == [("production", True)]

    async def test_inline_options_become_default_environment_options(
        self, service, db_session, org_id
    ):
        app = await service.import_app(org_id, make_legacy_snapshot())

        graph = await _graph(db_session, app.id)
        assert len(graph["options"]) == 1
        option_row = graph["options"][0]
        assert option_row.options == {"host": {"value": "a", "encrypted": False}}
        assert option_row.environment_id == graph["environments"][0].id
        assert option_row.data_source_id == graph["data_sources"][0].id

    async def test_encrypted_inline_option_is_stored_as_credential(
        self, service, db_session, org_id
    ):
        document = make_legacy_snapshot(
            dataSources=[
                make_data_source(
                    version_id=None,
                    options={
                        "host": {"value": "a", "encrypted": False},
                        "password": {"value": "s3cret", "encrypted": True},
                    },
                )
            ]
        )

        app = await service.import_app(org_id, document)

        graph = await _graph(db_session, app.id)
        stored = graph["options"][0].options
        assert stored["password"]["encrypted"] is True
        assert "value" not in stored["password"]
        assert await _count(db_session, Credential) == 1

        resolved = await resolve_options(db_session, stored)
        assert resolved == {"host": "a", "password": "s3cret"}

    async def test_versionless_sources_are_copied_into_every_version(
        self, service, db_session, org_id
    ):
        document = make_legacy_snapshot(
            appVersions=[make_version("v-1", name="v1"), make_version("v-2", name="v2")]
        )

        app = await service.import_app(org_id, document)

        graph = await _graph(db_session, app.id)
        assert len(graph["data_sources"]) == 2
        assert len(graph["queries"]) == 4
        assert len(graph["options"]) == 2
        # Each version's bindings point at its own copy of the queries
        for version in graph["versions"]:
            source_ids = {s.id for s in graph["data_sources"] if s.app_version_id == version.id}
            own_query_ids = {
                str(q.id) for q in graph["queries"] if q.data_source_id in source_ids
            }
            assert set(iter_definition_query_ids(version.definition)) <= own_query_ids

    async def test_sources_without_inline_options_get_empty_options(
        self, service, db_session, org_id
    ):
        document = make_legacy_snapshot(
            dataSources=[
                make_data_source("ds-1", version_id=None, options={"host": {"value": "a"}}),
                make_data_source("ds-2", version_id=None, name="rest", kind="restapi"),
            ],
            dataQueries=[],
        )

        app = await service.import_app(org_id, document)

        graph = await _graph(db_session, app.id)
        names = {s.id: s.name for s in graph["data_sources"]}
        by_source = {names[o.data_source_id]: o.options for o in graph["options"]}
        assert by_source == {
            "postgres": {"host": {"value": "a", "encrypted": False}},
            "rest": {},
        }


# ==================== FAILURES ====================


class TestImportFailures:

    @pytest.mark.parametrize("document", [None, "snapshot", [make_snapshot()]])
    async def test_non_object_creates_nothing(self, service, db_session, org_id, document):
        with pytest.raises(InvalidSnapshotError):
            await service.import_app(org_id, document)

        assert await _count(db_session, Application) == 0

    async def test_failure_mid_import_leaves_no_rows(
        self, service, db_session, org_id, monkeypatch
    ):
        async def failing_seed(*args, **kwargs):
            raise RuntimeError("permission store unavailable")

        monkeypatch.setattr(
            "src.services.app_import_export.importer.seed_admin_permissions", failing_seed
        )

        with pytest.raises(RuntimeError):
            await service.import_app(org_id, make_snapshot())

        for model in (
            Application,
            AppVersion,
            AppEnvironment,
            DataSource,
            DataSourceOptions,
            DataQuery,
            AppGroupPermission,
        ):
            assert await _count(db_session, model) == 0

    async def test_slug_assignment_of_missing_app(self, service):
        missing_id = uuid4()

        with pytest.raises(SlugAssignmentError) as exc_info:
            await service._assign_slug(missing_id)

        assert exc_info.value.app_id == missing_id


# ==================== PERMISSIONS ====================


class TestImportPermissions:

    async def test_grants_admin_group_full_rights(self, service, db_session, org_id):
        app = await service.import_app(org_id, make_snapshot())

        grants = (
            await db_session.execute(
                select(AppGroupPermission).where(AppGroupPermission.app_id == app.id)
            )
        ).scalars().all()
        assert len(grants) == 1
        assert (grants[0].read, grants[0].update, grants[0].delete) == (True, True, True)

    async def test_only_one_grant_with_several_admin_groups(
        self, service, session_factory, db_session, org_id
    ):
        async with session_factory() as session:
            async with session.begin():
                session.add(GroupPermission(organization_id=org_id, group="admin"))
                session.add(GroupPermission(organization_id=org_id, group="all_users"))

        app = await service.import_app(org_id, make_snapshot())

        assert await _count(db_session, AppGroupPermission, AppGroupPermission.app_id == app.id) == 1

    async def test_no_admin_group_still_imports(self, service, session_factory, db_session):
        async with session_factory() as session:
            async with session.begin():
                org = Organization(name="No admins")
                session.add(org)

        app = await service.import_app(org.id, make_snapshot())

        assert app.slug == str(app.id)
        assert await _count(db_session, AppGroupPermission) == 0


# ==================== EXPORT ====================


class TestExportApp:

    async def test_exports_graph(self, service, org_id):
        app = await service.import_app(org_id, make_snapshot())

        snapshot = await service.export_app(org_id, app.id)

        assert snapshot.app.id == str(app.id)
        assert snapshot.app.slug == str(app.id)
        assert snapshot.current_version_id == str(app.current_version_id)
        assert snapshot.export_version == SNAPSHOT_EXPORT_VERSION
        assert snapshot.exported_at is not None
        assert len(snapshot.app_versions) == 1
        assert len(snapshot.app_environments) == 1
        assert len(snapshot.data_sources) == 1
        assert len(snapshot.data_source_options) == 1
        assert [q.name for q in snapshot.data_queries] == [
            f"query_{QUERY_A_ID}",
            f"query_{QUERY_B_ID}",
        ]
        version_id = snapshot.app_versions[0].id
        assert snapshot.app_environments[0].version_id == version_id
        assert snapshot.data_sources[0].app_version_id == version_id
        assert snapshot.data_sources[0].options is None
        assert snapshot.data_source_options[0].data_source == snapshot.data_sources[0].id

    async def test_wire_format_is_camel_case(self, service, org_id):
        app = await service.import_app(org_id, make_snapshot())

        document = (await service.export_app(org_id, app.id)).model_dump(
            mode="json", by_alias=True
        )

        assert set(document) >= {
            "app",
            "currentVersionId",
            "appVersions",
            "appEnvironments",
            "dataSources",
            "dataSourceOptions",
            "dataQueries",
            "exportVersion",
            "exportedAt",
        }
        assert "dataSource" in document["dataSourceOptions"][0]
        assert "versionId" in document["appEnvironments"][0]

    async def test_app_of_other_organization_is_not_found(
        self, service, session_factory, org_id
    ):
        app = await service.import_app(org_id, make_snapshot())
        async with session_factory() as session:
            async with session.begin():
                other = Organization(name="Other")
                session.add(other)

        with pytest.raises(AppNotFoundError):
            await service.export_app(other.id, app.id)

    async def test_missing_app_is_not_found(self, service, org_id):
        with pytest.raises(AppNotFoundError):
            await service.export_app(org_id, uuid4())

    async def test_app_without_versions(self, service, org_id):
        app = await service.import_app(org_id, {"app": {"name": "Empty"}})

        snapshot = await service.export_app(org_id, app.id)

        assert snapshot.app_versions == []
        assert snapshot.data_queries == []


# ==================== ROUND TRIP ====================


class TestRoundTrip:

    async def test_export_then_import_preserves_graph(self, service, db_session, org_id):
        original = await service.import_app(org_id, _two_version_snapshot())
        document = (await service.export_app(org_id, original.id)).model_dump(
            mode="json", by_alias=True
        )

        copy = await service.import_app(org_id, document)

        original_graph = await _graph(db_session, original.id)
        copy_graph = await _graph(db_session, copy.id)
        for kind in ("versions", "environments", "data_sources", "queries", "options"):
            assert len(copy_graph[kind]) == len(original_graph[kind]), kind
        assert copy.id != original.id

    async def test_round_trip_resolves_every_query_reference(
        self, service, db_session, org_id
    ):
        original = await service.import_app(org_id, make_snapshot())
        document = (await service.export_app(org_id, original.id)).model_dump(
            mode="json", by_alias=True
        )

        copy = await service.import_app(org_id, document)

        copy_graph = await _graph(db_session, copy.id)
        new_query_ids = {str(q.id) for q in copy_graph["queries"]}
        referenced = _referenced_query_ids(copy_graph)
        assert len(referenced) == 3
        assert set(referenced) <= new_query_ids

    async def test_round_trip_keeps_current_version(self, service, db_session, org_id):
        original = await service.import_app(org_id, _two_version_snapshot())
        document = (await service.export_app(org_id, original.id)).model_dump(
            mode="json", by_alias=True
        )

        copy = await service.import_app(org_id, document)

        current = await db_session.get(AppVersion, copy.current_version_id)
        assert current.app_id == copy.id
        assert current.name == "v1"

    async def test_round_trip_gives_copy_its_own_credentials(
        self, service, db_session, org_id
    ):
        document = make_legacy_snapshot(
            dataSources=[
                make_data_source(
                    version_id=None,
                    options={"password": {"value": "s3cret", "encrypted": True}},
                )
            ]
        )
        original = await service.import_app(org_id, document)
        exported = (await service.export_app(org_id, original.id)).model_dump(
            mode="json", by_alias=True
        )

        copy = await service.import_app(org_id, exported)

        assert exported["dataSourceOptions"][0]["options"] == {
            "password": {"value": "s3cret", "encrypted": True}
        }
        original_bag = (await _graph(db_session, original.id))["options"][0].options
        copy_bag = (await _graph(db_session, copy.id))["options"][0].options
        assert copy_bag["password"]["credential_id"] != original_bag["password"]["credential_id"]
        assert await _count(db_session, Credential) == 2
        assert await resolve_options(db_session, copy_bag) == {"password": "s3cret"}
        assert await resolve_options(db_session, original_bag) == {"password": "s3cret"}
