"""
Migration data model.

``Migration`` is one numbered change-script, ``MigrationRegistry`` the
ordered catalog produced by the generator, and ``ProgressRecord`` the
singleton cursor stored in the progress collection.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .errors import DuplicateMigrationIdError, RegistryError
from .protocols import ApplyFunction
from .timestamps import to_iso8601

# Document field names in the progress collection
MIGRATION_ID_FIELD = "migrationId"
LAST_APPLIED_FIELD = "lastApplied"


@dataclass(frozen=True)
class Migration:
    """A numbered, named, one-way change applied to the target database."""

    id: int
    name: str
    apply: ApplyFunction = field(compare=False, repr=False)

    @property
    def label(self) -> str:
        return f"{self.id}: {self.name}"


class MigrationRegistry:
    """Ordered, read-only catalog of migrations.

    Iteration is always ascending by id, whatever order the migrations were
    passed in.  Duplicate or non-positive ids are rejected at construction.

    Example::

        registry = MigrationRegistry([
            Migration(id=1, name="0001-add_test_data", apply=up_1),
            Migration(id=13, name="0013-add_active_flag", apply=up_13),
        ])
        registry.pending(1)  # -> [Migration(id=13, ...)]
    """

    def __init__(self, migrations: Iterable[Migration] = ()) -> None:
        migrations = list(migrations)

        for migration in migrations:
            if isinstance(migration.id, bool) or not isinstance(migration.id, int) or migration.id < 1:
                raise RegistryError(
                    f"Migration id must be a positive integer, got {migration.id!r} ({migration.name})"
                ).with_context(migration_name=migration.name)

        ordered = sorted(migrations, key=lambda m: m.id)
        for previous, current in zip(ordered, ordered[1:]):
            if previous.id == current.id:
                raise DuplicateMigrationIdError(current.id, [previous.name, current.name])

        self._migrations: tuple[Migration, ...] = tuple(ordered)

    @property
    def count(self) -> int:
        return len(self._migrations)

    @property
    def ids(self) -> list[int]:
        return [m.id for m in self._migrations]

    def pending(self, last_applied_id: int) -> list[Migration]:
        """Migrations with ``id > last_applied_id``, in ascending id order."""
        return [m for m in self._migrations if m.id > last_applied_id]

    def __iter__(self) -> Iterator[Migration]:
        return iter(self._migrations)

    def __len__(self) -> int:
        return len(self._migrations)

    def __getitem__(self, index: int) -> Migration:
        return self._migrations[index]

    def __repr__(self) -> str:
        return f"MigrationRegistry(count={self.count}, ids={self.ids})"


@dataclass(frozen=True)
class ProgressRecord:
    """Highest migration id fully applied, and when it was recorded."""

    migration_id: int
    last_applied: datetime | None = None

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> ProgressRecord:
        """Build from a progress collection document.

        Raises:
            KeyError: The document has no ``migrationId`` field.
        """
        return cls(
            migration_id=int(document[MIGRATION_ID_FIELD]),
            last_applied=document.get(LAST_APPLIED_FIELD),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            MIGRATION_ID_FIELD: self.migration_id,
            LAST_APPLIED_FIELD: self.last_applied,
        }


@dataclass
class MigrationStatus:
    """Snapshot returned by ``MigrationRunner.status()``."""

    last_applied_id: int
    last_applied: datetime | None
    total: int
    pending: list[Migration] = field(default_factory=list)

    @property
    def is_up_to_date(self) -> bool:
        return not self.pending

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_applied_id": self.last_applied_id,
            "last_applied": to_iso8601(self.last_applied),
            "total_migrations": self.total,
            "pending_count": len(self.pending),
            "pending_migrations": [m.name for m in self.pending],
            "is_up_to_date": self.is_up_to_date,
        }


__all__ = [
    "LAST_APPLIED_FIELD",
    "MIGRATION_ID_FIELD",
    "Migration",
    "MigrationRegistry",
    "MigrationStatus",
    "ProgressRecord",
]
