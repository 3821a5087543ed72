"""
Ingestion orchestrator.

Groups one cycle's reports by match identity, reconciles each group and writes
the result with change-aware semantics:
  - no stored row, or stored state_hash differs -> full upsert
  - state_hash unchanged                        -> touch last_verified_at only

Groups are independent units of work and run concurrently (bounded). A failure
in one group is logged and reported in the returned IngestSummary; it never
aborts the other groups.
"""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Optional, Sequence

from shared.models.domain import IngestSummary, SourceReport, UnifiedFixture, utcnow
from shared.utils.logging import get_logger
from shared.utils.metrics import FIXTURE_CONFIDENCE, INGEST_GROUPS, INGEST_PROCESSING, atrack_latency

from reliability.change_detector import hash_resolved
from reliability.config import ReliabilitySettings, get_reliability_settings
from reliability.identity import IdentityResolver, nairobi_date_key
from reliability.repository import FixtureRepository
from reliability.resolver import resolve

logger = get_logger(__name__)

OUTCOME_CREATED = "created"
OUTCOME_UPDATED = "updated"
OUTCOME_UNCHANGED = "unchanged"
OUTCOME_FAILED = "failed"


def build_source_breakdown(reports: Sequence[SourceReport]) -> dict[str, str]:
    """Per-source summary; a later report from the same source overwrites an earlier one."""
    return {r.source.value: r.summary() for r in reports}


def first_competition(reports: Sequence[SourceReport]) -> Optional[str]:
    return next((r.competition for r in reports if r.competition), None)


class FixtureIngestor:
    """Drives identity grouping, resolution, hashing and selective upsert."""

    def __init__(
        self,
        repository: FixtureRepository,
        identity: Optional[IdentityResolver] = None,
        settings: Optional[ReliabilitySettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repo = repository
        self._identity = identity or IdentityResolver()
        self._settings = settings or get_reliability_settings()
        self._clock = clock

    @classmethod
    async def create(
        cls,
        repository: FixtureRepository,
        settings: Optional[ReliabilitySettings] = None,
    ) -> "FixtureIngestor":
        """Build an ingestor whose identity resolver knows the stored team aliases."""
        aliases = await repository.load_aliases()
        return cls(repository, IdentityResolver(aliases), settings)

    async def ingest(self, reports: Sequence[SourceReport]) -> IngestSummary:
        groups = self._identity.group(reports)
        summary = IngestSummary(groups=len(groups))
        if not groups:
            return summary

        sem = asyncio.Semaphore(max(1, self._settings.max_concurrent_groups))

        async def run(fixture_id: str, members: list[SourceReport]) -> None:
            async with sem:
                try:
                    async with atrack_latency(INGEST_PROCESSING):
                        outcome = await self._ingest_group(fixture_id, members)
                except Exception as exc:
                    logger.exception(
                        "ingest_group_failed",
                        fixture_id=fixture_id,
                        reports=len(members),
                        error=str(exc),
                    )
                    summary.failed[fixture_id] = str(exc) or type(exc).__name__
                    outcome = OUTCOME_FAILED
                INGEST_GROUPS.labels(outcome=outcome).inc()
                if outcome == OUTCOME_CREATED:
                    summary.created += 1
                elif outcome == OUTCOME_UPDATED:
                    summary.updated += 1
                elif outcome == OUTCOME_UNCHANGED:
                    summary.unchanged += 1

        await asyncio.gather(*(run(fid, members) for fid, members in groups.items()))

        logger.info(
            "ingest_complete",
            reports=len(reports),
            groups=summary.groups,
            created=summary.created,
            updated=summary.updated,
            unchanged=summary.unchanged,
            failed=len(summary.failed),
        )
        return summary

    async def _ingest_group(self, fixture_id: str, members: list[SourceReport]) -> str:
        verified_at = self._clock()
        resolved = resolve(members, verified_at=verified_at)
        if resolved is None:
            raise ValueError("empty identity group")
        state_hash = hash_resolved(resolved)
        FIXTURE_CONFIDENCE.observe(resolved.confidence)

        async with self._repo.locked(fixture_id) as session:
            existing = await self._repo.get(session, fixture_id)
            if existing is not None and existing.state_hash == state_hash:
                await self._repo.touch(session, fixture_id, verified_at)
                logger.debug("fixture_verified_unchanged", fixture_id=fixture_id)
                return OUTCOME_UNCHANGED

            lead = members[0]
            fixture = UnifiedFixture(
                id=fixture_id,
                nairobi_date_key=nairobi_date_key(resolved.kickoff),
                kickoff=resolved.kickoff,
                status=resolved.status,
                score=resolved.score,
                home_team=lead.home_team,
                away_team=lead.away_team,
                competition=first_competition(members) or (existing.competition if existing else None),
                confidence=resolved.confidence,
                state_hash=state_hash,
                source_breakdown=build_source_breakdown(members),
                last_verified_at=verified_at,
            )
            await self._repo.upsert(session, fixture)

        if existing is None:
            logger.info(
                "fixture_created",
                fixture_id=fixture_id,
                status=resolved.status.value,
                confidence=resolved.confidence,
            )
            return OUTCOME_CREATED
        logger.info(
            "fixture_updated",
            fixture_id=fixture_id,
            status=resolved.status.value,
            previous_status=existing.status.value,
            confidence=resolved.confidence,
        )
        return OUTCOME_UPDATED
