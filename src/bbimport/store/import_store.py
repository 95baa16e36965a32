"""Persistence of validated entities as pending imports."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from bbimport.core.exceptions import TransactionError
from bbimport.models.entity import QueuedEntity
from bbimport.settings.config import ExistingImportAction
from bbimport.store import sql as sql_schema
from bbimport.store.sql import session_factory as default_session_factory

LOGGER = logging.getLogger(__name__)

CREATED = "created pending"
UPDATED = "updated pending"
SKIPPED = "skipped pending"
ALREADY_IMPORTED = "already imported"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ImportResult:
    """Outcome of :meth:`ImportStore.import_record`."""

    status: str
    import_id: int


class ImportStore:
    """Write queued entities into the ``pending_imports`` table.

    Every call of :meth:`import_record` runs in its own transaction and is
    idempotent for the ``(source, originId)`` pair, so a retried attempt never
    creates a duplicate import.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker | None = None,
        existing_import_action: ExistingImportAction = "skip",
    ) -> None:
        self._session_factory = session_factory or default_session_factory()
        self.existing_import_action = existing_import_action

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def import_record(
        self,
        entity: QueuedEntity,
        existing_import_action: Optional[ExistingImportAction] = None,
    ) -> ImportResult:
        """Insert or update the pending import for ``entity``.

        Raises:
            TransactionError: When the database transaction fails.
            ValueError: When the entity lacks its origin identifiers.
        """

        if not entity.origin_id or not entity.source:
            raise ValueError(f"entity {entity} has no origin id or source")
        action = existing_import_action or self.existing_import_action
        try:
            with self._session_scope() as session:
                return self._import(session, entity, action)
        except SQLAlchemyError as exc:
            raise TransactionError(f"failed to import {entity}: {exc}") from exc

    def _import(self, session: Session, entity: QueuedEntity, action: ExistingImportAction) -> ImportResult:
        table = sql_schema.pending_imports
        existing = session.execute(
            sa.select(table.c.import_id, table.c.last_edited, table.c.accepted_bbid).where(
                table.c.origin_source == entity.source,
                table.c.origin_id == entity.origin_id,
            )
        ).first()

        default_alias = entity.data.default_alias()
        values: Dict[str, Any] = {
            "entity_type": entity.entity_type,
            "default_name": default_alias.name if default_alias else None,
            "last_edited": entity.last_edited,
            "data": entity.data.as_dict(),
            "updated_at": _utcnow(),
        }

        if existing is None:
            result = session.execute(
                sa.insert(table).values(
                    origin_source=entity.source,
                    origin_id=entity.origin_id,
                    imported_at=_utcnow(),
                    **values,
                )
            )
            import_id = result.inserted_primary_key[0]
            LOGGER.debug("Inserted pending import import_id=%s for %s", import_id, entity)
            return ImportResult(status=CREATED, import_id=import_id)

        if existing.accepted_bbid:
            return ImportResult(status=ALREADY_IMPORTED, import_id=existing.import_id)

        if action == "update pending" and _is_not_older(entity.last_edited, existing.last_edited):
            session.execute(sa.update(table).where(table.c.import_id == existing.import_id).values(**values))
            return ImportResult(status=UPDATED, import_id=existing.import_id)

        return ImportResult(status=SKIPPED, import_id=existing.import_id)

    def get_import(self, import_id: int) -> Dict[str, Any] | None:
        """Return the stored pending import as a dictionary."""

        with self._session_scope() as session:
            row = session.execute(
                sa.select(sql_schema.pending_imports).where(sql_schema.pending_imports.c.import_id == import_id)
            ).first()
        return dict(row._mapping) if row else None

    def mark_accepted(self, import_id: int, bbid: str) -> None:
        """Record that the pending import has been accepted as entity ``bbid``."""

        with self._session_scope() as session:
            session.execute(
                sa.update(sql_schema.pending_imports)
                .where(sql_schema.pending_imports.c.import_id == import_id)
                .values(accepted_bbid=bbid, updated_at=_utcnow())
            )


def _is_not_older(incoming: str | None, stored: str | None) -> bool:
    # ISO-8601 strings compare chronologically
    if not incoming or not stored:
        return True
    return incoming >= stored


__all__ = [
    "ALREADY_IMPORTED",
    "CREATED",
    "ImportResult",
    "ImportStore",
    "SKIPPED",
    "UPDATED",
]
