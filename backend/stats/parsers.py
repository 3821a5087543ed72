"""
API-Football payload parsers.
Raise OriginPayloadError on an unexpected shape; callers log and treat it as no data.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from shared.models.domain import FormMatch, H2HMeeting, HeadToHead, TeamStatistics, VenueSplit, utcnow

FORM_LENGTH = 5
H2H_RECENT = 5


class OriginPayloadError(ValueError):
    """Origin response does not have the expected schema."""


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def h2h_id(team1_id: int, team2_id: int) -> str:
    low, high = sorted((team1_id, team2_id))
    return f"{low}-{high}"


def team_stats_id(team_id: int, season: int) -> str:
    return f"{team_id}-{season}"


def parse_team_stats(
    response: Any,
    team_id: int,
    league_id: int,
    season: int,
    now: Optional[datetime] = None,
) -> TeamStatistics:
    """Map a /teams/statistics 'response' object onto TeamStatistics."""
    if not isinstance(response, dict) or not response:
        raise OriginPayloadError(f"team statistics response is not an object: {type(response).__name__}")

    fixtures = _dict(response.get("fixtures"))
    goals = _dict(response.get("goals"))
    scored = _dict(_dict(goals.get("for")).get("total"))
    conceded = _dict(_dict(goals.get("against")).get("total"))
    played = _dict(fixtures.get("played"))
    wins = _dict(fixtures.get("wins"))
    draws = _dict(fixtures.get("draws"))
    losses = _dict(fixtures.get("loses"))

    form = "".join(c for c in str(response.get("form") or "")[:FORM_LENGTH] if c in "WDL")
    # The statistics endpoint only exposes results, not dates or opponents.
    last5 = [FormMatch(result=result) for result in form]

    total_played = _int(played.get("total"))
    goals_for = _int(scored.get("total"))
    goals_against = _int(conceded.get("total"))

    def split(venue: str) -> VenueSplit:
        return VenueSplit(
            played=_int(played.get(venue)),
            wins=_int(wins.get(venue)),
            draws=_int(draws.get(venue)),
            losses=_int(losses.get(venue)),
            goals_for=_int(scored.get(venue)),
            goals_against=_int(conceded.get(venue)),
        )

    return TeamStatistics(
        team_id=team_id,
        team_name=str(_dict(response.get("team")).get("name") or ""),
        league_id=league_id,
        season=season,
        last_updated=now or utcnow(),
        matches_played=total_played,
        wins=_int(wins.get("total")),
        draws=_int(draws.get("total")),
        losses=_int(losses.get("total")),
        goals_for=goals_for,
        goals_against=goals_against,
        home=split("home"),
        away=split("away"),
        form=form,
        last5_matches=last5,
        avg_goals_scored=goals_for / total_played if total_played else 0.0,
        avg_goals_conceded=goals_against / total_played if total_played else 0.0,
        clean_sheets=_int(_dict(response.get("clean_sheet")).get("total")),
        failed_to_score=_int(_dict(response.get("failed_to_score")).get("total")),
    )


def parse_h2h(
    fixtures: Any,
    team1_id: int,
    team2_id: int,
    now: Optional[datetime] = None,
) -> HeadToHead:
    """
    Map a /fixtures/headtohead 'response' list onto HeadToHead.

    Wins, draws and average goals cover the most recent H2H_RECENT meetings;
    total_meetings counts every fixture returned.
    """
    if not isinstance(fixtures, list):
        raise OriginPayloadError(f"head-to-head response is not a list: {type(fixtures).__name__}")

    team1_wins = team2_wins = draws = total_goals = 0
    meetings: list[H2HMeeting] = []
    for fixture in fixtures[:H2H_RECENT]:
        fixture = _dict(fixture)
        teams = _dict(fixture.get("teams"))
        home_id = _dict(teams.get("home")).get("id")
        away_id = _dict(teams.get("away")).get("id")
        goals = _dict(fixture.get("goals"))
        home_score, away_score = _int(goals.get("home")), _int(goals.get("away"))
        total_goals += home_score + away_score

        winner: Optional[int] = None
        if home_score != away_score:
            winner = home_id if home_score > away_score else away_id
            if winner == team1_id:
                team1_wins += 1
            else:
                team2_wins += 1
        else:
            draws += 1

        meetings.append(
            H2HMeeting(
                date=str(_dict(fixture.get("fixture")).get("date") or ""),
                home_team_id=home_id,
                away_team_id=away_id,
                home_score=home_score,
                away_score=away_score,
                winner=winner,
            )
        )

    first_teams = _dict(_dict(fixtures[0]).get("teams")) if fixtures else {}
    names = {
        _dict(first_teams.get(side)).get("id"): _dict(first_teams.get(side)).get("name")
        for side in ("home", "away")
    }

    return HeadToHead(
        id=h2h_id(team1_id, team2_id),
        team1_id=team1_id,
        team2_id=team2_id,
        team1_name=names.get(team1_id) or f"Team {team1_id}",
        team2_name=names.get(team2_id) or f"Team {team2_id}",
        last_updated=now or utcnow(),
        total_meetings=len(fixtures),
        team1_wins=team1_wins,
        draws=draws,
        team2_wins=team2_wins,
        last5_meetings=meetings,
        avg_goals_per_game=total_goals / len(meetings) if meetings else 0.0,
    )
