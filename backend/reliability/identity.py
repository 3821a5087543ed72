"""
Match identity resolution.

Derives a stable, source-independent key from team names and the kickoff's
Africa/Nairobi calendar date, so reports about the same real-world match from
differently-named sources land in one group:

    "{slugify(home)}-vs-{slugify(away)}-{YYYY-MM-DD}"

Name normalization is a heuristic. Known naming variants that survive it are
merged through an alias table (slug -> canonical slug).
"""
from __future__ import annotations

import re
import unicodedata
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.domain import SourceReport
from shared.models.orm import TeamAliasORM
from shared.utils.logging import get_logger

logger = get_logger(__name__)

NAIROBI_TZ = ZoneInfo("Africa/Nairobi")

NOISE_TOKENS = frozenset({"fc", "afc", "sc", "united", "city", "real", "st", "saint"})

# Slugs seen from sources that abbreviate club names.
BUILTIN_ALIASES: dict[str, str] = {
    "man-utd": "manchester",
    "man": "manchester",
    "spurs": "tottenham-hotspur",
    "wolves": "wolverhampton-wanderers",
    "nottm-forest": "nottingham-forest",
    "sheff-utd": "sheffield",
    "psg": "paris-saint-germain",
    "paris-sg": "paris",
    "inter": "internazionale",
    "atletico": "atletico-madrid",
}

_PUNCT_RE = re.compile(r"[^a-z0-9\s]")
_SPACE_RE = re.compile(r"\s+")


def _normalize(name: str) -> str:
    text = unicodedata.normalize("NFKD", (name or "").strip().lower())
    text = text.encode("ascii", "ignore").decode("ascii")
    text = _PUNCT_RE.sub(" ", text.replace("&", " and "))
    return _SPACE_RE.sub(" ", text).strip()


def slugify(name: str) -> str:
    """
    Normalize a team name into a join token.

    "Arsenal FC" -> "arsenal"; "Real Madrid" -> "madrid"; "St. Mirren" -> "mirren".
    A name made only of noise tokens keeps its normalized form.
    """
    normalized = _normalize(name)
    tokens = [t for t in normalized.split(" ") if t and t not in NOISE_TOKENS]
    if not tokens:
        tokens = [t for t in normalized.split(" ") if t]
    return "-".join(tokens)


def nairobi_date_key(kickoff: datetime) -> str:
    """Calendar date (YYYY-MM-DD) of the kickoff in Africa/Nairobi."""
    if kickoff.tzinfo is None:
        kickoff = kickoff.replace(tzinfo=timezone.utc)
    return kickoff.astimezone(NAIROBI_TZ).date().isoformat()


def identity_of(report: SourceReport) -> str:
    """Identity key for a report, without alias resolution."""
    return f"{slugify(report.home_team)}-vs-{slugify(report.away_team)}-{nairobi_date_key(report.kickoff)}"


class IdentityResolver:
    """Identity keys with alias merging; aliases override the built-in table."""

    def __init__(self, aliases: Optional[Mapping[str, str]] = None) -> None:
        self._aliases: dict[str, str] = {**BUILTIN_ALIASES, **(aliases or {})}

    def team_slug(self, name: str) -> str:
        slug = slugify(name)
        return self._aliases.get(slug, slug)

    def identity_of(self, report: SourceReport) -> str:
        home = self.team_slug(report.home_team)
        away = self.team_slug(report.away_team)
        return f"{home}-vs-{away}-{nairobi_date_key(report.kickoff)}"

    def group(self, reports: Iterable[SourceReport]) -> dict[str, list[SourceReport]]:
        """Group reports by identity, preserving first-seen order of keys and members."""
        groups: dict[str, list[SourceReport]] = {}
        for report in reports:
            groups.setdefault(self.identity_of(report), []).append(report)
        return groups


def group_by_identity(reports: Iterable[SourceReport]) -> dict[str, list[SourceReport]]:
    return IdentityResolver().group(reports)


async def load_team_aliases(session: AsyncSession) -> dict[str, str]:
    """Read the team_aliases merge table."""
    result = await session.execute(select(TeamAliasORM.alias_slug, TeamAliasORM.canonical_slug))
    aliases = {alias: canonical for alias, canonical in result.all()}
    logger.debug("team_aliases_loaded", count=len(aliases))
    return aliases
