"""Store/provider reconciliation.

Pure functions: given a store snapshot and a provider snapshot of one entity
kind, build one unified entry per external id, classify it and summarize
the result. No I/O happens here.
"""

import enum
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

Record = Mapping[str, Any]
Normalizer = Callable[[Any], str]


class DiffStatus(enum.StrEnum):
    """Classification of one unified entity."""

    OK = "ok"
    MISMATCH = "mismatch"
    MISSING_IN_DB = "missing-in-db"
    EXTRA_IN_DB = "extra-in-db"
    NEW = "new"


class DiffSource(enum.StrEnum):
    """Which side(s) an entity was seen on."""

    DB = "db"
    PROVIDER = "provider"
    BOTH = "both"


# Lower sorts first
STATUS_SEVERITY: dict[DiffStatus, int] = {
    DiffStatus.MISSING_IN_DB: 1,
    DiffStatus.MISMATCH: 2,
    DiffStatus.EXTRA_IN_DB: 3,
    DiffStatus.NEW: 4,
    DiffStatus.OK: 5,
}


@dataclass(frozen=True)
class UnifiedEntity:
    """Transient join of a store record and a provider record by external id.

    At least one of ``db`` / ``provider`` is always set.
    """

    external_id: str
    source: DiffSource
    status: DiffStatus
    db: Record | None = None
    provider: Record | None = None
    mismatched_fields: tuple[str, ...] = ()

    def value(self, key: str, default: Any = None) -> Any:
        """Read a field, preferring the store side."""
        for side in (self.db, self.provider):
            if side is not None and side.get(key) is not None:
                return side[key]
        return default


@dataclass(frozen=True)
class DiffSummary:
    """Counts derived from a reconciled list."""

    total: int = 0
    ok: int = 0
    missing: int = 0
    extra: int = 0
    mismatch: int = 0
    new: int = 0
    db_count: int = 0
    provider_count: int = 0


@dataclass(frozen=True)
class Comparator:
    """Fields to compare for one entity kind and how to normalize each."""

    fields: Mapping[str, Normalizer]
    sort_key: str | None = None
    descending: bool = True

    def differences(self, db: Record, provider: Record) -> tuple[str, ...]:
        """Names of the fields whose normalized values differ."""
        return tuple(
            name for name, normalize in self.fields.items() if normalize(db.get(name)) != normalize(provider.get(name))
        )


def external_key(value: Any) -> str:
    """String form of an external id, the join key between both sides."""
    return str(value).strip()


def _index(records: Iterable[Record]) -> dict[str, Record]:
    # Duplicates are not expected; the last one wins
    return {external_key(r["external_id"]): r for r in records}


def _numeric_id(external_id: str) -> tuple[int, float | str]:
    try:
        return (0, float(external_id))
    except ValueError:
        return (1, external_id)


def reconcile(
    db_records: Iterable[Record],
    provider_records: Iterable[Record],
    comparator: Comparator,
) -> list[UnifiedEntity]:
    """Join both snapshots by external id and classify every entity.

    Args:
        db_records: Store-side records, each with an ``external_id`` key.
        provider_records: Provider-side records, each with an ``external_id`` key.
        comparator: Compared fields and output ordering for the entity kind.

    Returns:
        One UnifiedEntity per external id in the union of both sides. With a
        ``sort_key`` the list is ordered by that field (most recent first by
        default); otherwise by status severity, then numeric external id.
    """
    db_map = _index(db_records)
    provider_map = _index(provider_records)

    unified: list[UnifiedEntity] = []
    for key in db_map.keys() | provider_map.keys():
        db = db_map.get(key)
        provider = provider_map.get(key)
        if provider is None:
            unified.append(UnifiedEntity(key, DiffSource.DB, DiffStatus.EXTRA_IN_DB, db=db))
        elif db is None:
            unified.append(UnifiedEntity(key, DiffSource.PROVIDER, DiffStatus.MISSING_IN_DB, provider=provider))
        else:
            changed = comparator.differences(db, provider)
            status = DiffStatus.MISMATCH if changed else DiffStatus.OK
            unified.append(UnifiedEntity(key, DiffSource.BOTH, status, db=db, provider=provider, mismatched_fields=changed))

    if comparator.sort_key is not None:
        sort_key = comparator.sort_key
        unified.sort(key=lambda e: _numeric_id(e.external_id))
        unified.sort(key=lambda e: e.value(sort_key) or 0, reverse=comparator.descending)
    else:
        unified.sort(key=lambda e: (STATUS_SEVERITY[e.status], _numeric_id(e.external_id)))
    return unified


def summarize(unified: Iterable[UnifiedEntity]) -> DiffSummary:
    """Count statuses and sides in a single pass."""
    statuses: Counter[DiffStatus] = Counter()
    db_count = provider_count = total = 0
    for entity in unified:
        total += 1
        statuses[entity.status] += 1
        if entity.db is not None:
            db_count += 1
        if entity.provider is not None:
            provider_count += 1
    return DiffSummary(
        total=total,
        ok=statuses[DiffStatus.OK],
        missing=statuses[DiffStatus.MISSING_IN_DB],
        extra=statuses[DiffStatus.EXTRA_IN_DB],
        mismatch=statuses[DiffStatus.MISMATCH],
        new=statuses[DiffStatus.NEW],
        db_count=db_count,
        provider_count=provider_count,
    )
