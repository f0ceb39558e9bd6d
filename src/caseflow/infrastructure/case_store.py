"""Process-wide case cache.

Holds the viewer's active cases, archived cases and an id lookup. Readers
get immutable views; only the lifecycle service and its fetch routines call
the mutators. Every mutator swaps in new containers rather than editing the
exposed ones, so a view taken before a write never changes underneath its
holder.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING

from caseflow.domain.enums import CaseBucket
from caseflow.domain.predicates import categorize_case

if TYPE_CHECKING:
    from caseflow.schemas.case import Applicant, Case

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _recency(case: Case) -> datetime:
    stamp = case.updated_at or case.created_at
    if stamp is None:
        return _EPOCH
    return stamp if stamp.tzinfo is not None else stamp.replace(tzinfo=UTC)


class CaseStore:
    """Single-writer cache of Case records."""

    def __init__(self) -> None:
        self._cases: tuple[Case, ...] = ()
        self._archived: tuple[Case, ...] = ()
        self._lookup: Mapping[str, Case] = MappingProxyType({})

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def cases(self) -> tuple[Case, ...]:
        return self._cases

    @property
    def cases_archived(self) -> tuple[Case, ...]:
        return self._archived

    @property
    def lookup(self) -> Mapping[str, Case]:
        return self._lookup

    def get(self, case_id: str) -> Case | None:
        return self._lookup.get(str(case_id))

    def __contains__(self, case_id: object) -> bool:
        return str(case_id) in self._lookup

    def counts(self) -> dict[CaseBucket, int]:
        """Dashboard tab counts. Archived comes from the archived list."""
        totals = {bucket: 0 for bucket in CaseBucket}
        for case in self._cases:
            bucket = categorize_case(case)
            if bucket is not CaseBucket.ARCHIVED:
                totals[bucket] += 1
        totals[CaseBucket.ARCHIVED] = len(self._archived)
        return totals

    def by_bucket(self, bucket: CaseBucket, search: str | None = None) -> list[Case]:
        """Cases in a dashboard bucket, newest first, optionally filtered."""
        if bucket is CaseBucket.ARCHIVED:
            records = list(self._archived)
        else:
            records = [c for c in self._cases if categorize_case(c) is bucket]
        records.sort(key=_recency, reverse=True)
        term = (search or "").strip().lower()
        if term:
            records = [c for c in records if term in c.search_text()]
        return records

    # ------------------------------------------------------------------
    # Mutators (lifecycle service only)
    # ------------------------------------------------------------------

    def rebuild(self, active: Iterable[Case]) -> None:
        """Replace the active list after a fetch."""
        self._cases = tuple(c for c in active if not c.archived)
        self._rebuild_lookup()

    def rebuild_archived(self, archived: Iterable[Case]) -> None:
        """Replace the archived list after a fetch."""
        self._archived = tuple(archived)
        self._rebuild_lookup()

    def merge(self, case: Case) -> None:
        """Insert or replace one case, filing it by its archived flag."""
        active = tuple(c for c in self._cases if c.id != case.id)
        archived = tuple(c for c in self._archived if c.id != case.id)
        if case.archived:
            archived = (*archived, case)
        else:
            active = (*active, case)
        self._cases, self._archived = active, archived
        self._rebuild_lookup()

    def prune(self, case_id: str) -> None:
        """Drop a deleted case from every collection."""
        target = str(case_id)
        self._cases = tuple(c for c in self._cases if c.id != target)
        self._archived = tuple(c for c in self._archived if c.id != target)
        self._rebuild_lookup()

    def append_applicant(self, case_id: str, applicant: Applicant) -> Case | None:
        """Optimistically record an application. Reconciled by the next fetch."""
        current = self.get(case_id)
        if current is None:
            return None
        updated = current.model_copy(
            update={
                "applicants": [*current.applicants, applicant],
                "applicant_count": current.applicant_count + 1,
            }
        )
        self.merge(updated)
        return updated

    def _rebuild_lookup(self) -> None:
        lookup: dict[str, Case] = {}
        for case in (*self._cases, *self._archived):
            lookup[case.id] = case
        self._lookup = MappingProxyType(lookup)
