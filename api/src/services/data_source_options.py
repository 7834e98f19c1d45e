"""
Data Source Options Parser

Turns user-entered {key, value, encrypted} options into the option bag
stored on DataSourceOptions rows:

    {"host": {"value": "db.internal", "encrypted": False},
     "password": {"credential_id": "<uuid>", "encrypted": True}}

Encrypted values never live in the bag itself; they are stored as
Credential rows, encrypted with the application secret. Snapshots carry
them inline as {"value": ..., "encrypted": True} and get new credential
rows on import.
"""

import copy
import logging
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.security import decrypt_secret, encrypt_secret
from src.models.contracts.data_sources import DataSourceOption
from src.models.orm.credentials import Credential

logger = logging.getLogger(__name__)


async def create_credential(session: AsyncSession, value: Any) -> Credential:
    """Store a secret value as an encrypted credential row."""
    plaintext = "" if value is None else str(value)
    credential = Credential(value_ciphertext=encrypt_secret(plaintext))
    session.add(credential)
    await session.flush()
    return credential


async def parse_options_for_create(
    session: AsyncSession,
    options: Iterable[DataSourceOption],
) -> dict[str, Any]:
    """
    Build a storage-ready option bag from a sequence of options.

    Order is preserved; a repeated key keeps its last value.

    Args:
        session: Session of the surrounding unit of work
        options: Options as entered by a user or converted from a snapshot

    Returns:
        Option bag keyed by option key
    """
    parsed: dict[str, Any] = {}

    for option in options:
        if option.encrypted:
            credential = await create_credential(session, option.value)
            parsed[option.key] = {"credential_id": str(credential.id), "encrypted": True}
        else:
            parsed[option.key] = {"value": option.value, "encrypted": False}

    return parsed


async def _load_secrets(session: AsyncSession, options: dict[str, Any]) -> dict[str, str]:
    """Decrypt the credentials referenced by an option bag, keyed by credential id."""
    credential_ids: set[UUID] = set()
    for entry in options.values():
        if isinstance(entry, dict) and entry.get("encrypted") and entry.get("credential_id"):
            try:
                credential_ids.add(UUID(str(entry["credential_id"])))
            except ValueError:
                logger.debug(f"Ignoring malformed credential id {entry['credential_id']!r}")

    secrets: dict[str, str] = {}
    if credential_ids:
        result = await session.execute(
            select(Credential).where(Credential.id.in_(credential_ids))
        )
        for credential in result.scalars().all():
            secrets[str(credential.id)] = decrypt_secret(credential.value_ciphertext)
    return secrets


async def resolve_options(
    session: AsyncSession,
    options: dict[str, Any] | None,
) -> dict[str, Any]:
    """
    Flatten an option bag to {key: value}, decrypting credential-backed values.

    Credentials that no longer exist resolve to None.
    """
    if not options:
        return {}

    secrets = await _load_secrets(session, options)

    resolved: dict[str, Any] = {}
    for key, entry in options.items():
        if not isinstance(entry, dict):
            resolved[key] = entry
        elif entry.get("encrypted"):
            credential_id = entry.get("credential_id")
            if credential_id not in secrets:
                logger.debug(f"Credential {credential_id} for option '{key}' not found")
            resolved[key] = secrets.get(credential_id)
        else:
            resolved[key] = entry.get("value")

    return resolved


async def export_options(
    session: AsyncSession,
    options: dict[str, Any] | None,
) -> dict[str, Any] | None:
    """
    Copy an option bag for a snapshot, inlining credential-backed values.

    Credential ids are local to one database, so encrypted entries leave as
    {"value": <plaintext>, "encrypted": True}. Entries whose credential is
    gone are copied unchanged.
    """
    if options is None:
        return None

    secrets = await _load_secrets(session, options)

    exported: dict[str, Any] = {}
    for key, entry in options.items():
        if isinstance(entry, dict) and entry.get("encrypted") and entry.get("credential_id"):
            credential_id = str(entry["credential_id"])
            if credential_id in secrets:
                exported[key] = {"value": secrets[credential_id], "encrypted": True}
                continue
            logger.warning(f"Credential {credential_id} for option '{key}' not found on export")
        exported[key] = copy.deepcopy(entry)

    return exported


async def import_options(
    session: AsyncSession,
    options: dict[str, Any] | None,
) -> dict[str, Any] | None:
    """
    Build a stored option bag from a snapshot bag.

    Every encrypted entry gets a new credential row: inline values are
    encrypted, references to a credential of this database are copied.
    Unknown credential references are kept as-is and resolve to None.
    """
    if options is None:
        return None

    secrets = await _load_secrets(session, options)

    imported: dict[str, Any] = {}
    for key, entry in options.items():
        if not (isinstance(entry, dict) and entry.get("encrypted")):
            imported[key] = copy.deepcopy(entry)
            continue

        if "value" in entry:
            plaintext = entry["value"]
        elif str(entry.get("credential_id")) in secrets:
            plaintext = secrets[str(entry["credential_id"])]
        else:
            logger.warning(
                f"Credential {entry.get('credential_id')} for option '{key}' not found on import"
            )
            imported[key] = copy.deepcopy(entry)
            continue

        credential = await create_credential(session, plaintext)
        imported[key] = {"credential_id": str(credential.id), "encrypted": True}

    return imported
