"""
Standings arithmetic shared by the rebuild, incremental and live paths.

Nothing here touches the database. Functions operate on ``Standing`` rows
(persistent or transient) and plain match objects exposing ``home_team_id``,
``away_team_id``, ``home_score``, ``away_score``, ``status``, ``date`` and
``match_id``.

Scoring rule: win 3, draw 1, loss 0. Goals accumulate regardless of outcome.
Ranking: points, goal difference, goals for, all descending, then team id
ascending so that fully tied teams always come out in the same order.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from matchday.core.config import settings
from matchday.core.exceptions import NotFoundError, ValidationError
from matchday.core.utils import generate_standing_id, utcnow
from matchday.matches.models.match_model import MatchStatus
from matchday.standings.models.standings_model import Standing, StandingOverlay

logger = logging.getLogger(__name__)

WIN = "W"
DRAW = "D"
LOSS = "L"

POINTS = {WIN: 3, DRAW: 1, LOSS: 0}


def check_score(value, label: str = "score") -> int:
    if value is None or isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{label} must be an integer, got {value!r}")
    if value < 0:
        raise ValidationError(f"{label} cannot be negative, got {value}")
    return value


def outcome(goals_for: int, goals_against: int) -> str:
    if goals_for > goals_against:
        return WIN
    if goals_for < goals_against:
        return LOSS
    return DRAW


def push_form(form: Optional[list], symbol: str, length: Optional[int] = None) -> list:
    # Always a new list so the JSON column sees the change
    length = length or settings.FORM_LENGTH
    return ([symbol] + list(form or []))[:length]


def new_standing(league_id: str, season: str, team_id: str, position: int = 0) -> Standing:
    return Standing(
        standing_id=generate_standing_id(),
        league_id=league_id,
        season=season,
        team_id=team_id,
        position=position,
        played=0,
        won=0,
        drawn=0,
        lost=0,
        goals_for=0,
        goals_against=0,
        points=0,
        form=[],
        last_updated=utcnow(),
    )


def record_result(
    standing: Standing,
    goals_for: int,
    goals_against: int,
    count_goals: bool = True,
    count_points: bool = True,
) -> str:
    """
    Fold one finished match into a single side's standing.

    ``count_goals``/``count_points`` are switched off when a live overlay
    already carries this match's goals and points.
    """
    symbol = outcome(goals_for, goals_against)

    standing.played += 1
    if symbol == WIN:
        standing.won += 1
    elif symbol == LOSS:
        standing.lost += 1
    else:
        standing.drawn += 1
    standing.form = push_form(standing.form, symbol)

    if count_goals:
        standing.goals_for += goals_for
        standing.goals_against += goals_against
    if count_points:
        standing.points += POINTS[symbol]

    standing.last_updated = utcnow()
    return symbol


def apply_result(
    home: Standing,
    away: Standing,
    home_score: int,
    away_score: int,
    count_goals: bool = True,
    count_points: bool = True,
) -> Tuple[str, str]:
    check_score(home_score, "home_score")
    check_score(away_score, "away_score")
    return (
        record_result(home, home_score, away_score, count_goals, count_points),
        record_result(away, away_score, home_score, count_goals, count_points),
    )


def replace_provisional(standing: Standing, overlay, goals_for: int, goals_against: int) -> int:
    """
    Swap the previous provisional contribution for one built from the current score.

    Each call is a full replace: the stored ``temp_*`` values are subtracted
    before the new ones are added, so intermediate scores leave no residue.
    Returns the provisional points now folded in; the caller records them on
    the overlay.
    """
    previous_for = overlay.temp_goals_for if overlay is not None else 0
    previous_against = overlay.temp_goals_against if overlay is not None else 0
    previous_points = overlay.temp_points if overlay is not None else 0

    provisional_points = POINTS[outcome(goals_for, goals_against)]

    standing.goals_for = standing.goals_for - previous_for + goals_for
    standing.goals_against = standing.goals_against - previous_against + goals_against
    standing.points = standing.points - previous_points + provisional_points
    standing.last_updated = utcnow()
    return provisional_points


def attach_provisional(standing: Standing, match_id: str, goals_for: int, goals_against: int) -> StandingOverlay:
    """Fold a live score into ``standing`` as its single overlay, replacing whatever it held before."""
    overlay = standing.overlay
    if overlay is not None and overlay.match_id != match_id:
        # Single slot: the other match's provisional contribution is dropped
        logger.warning(
            f"⚠️ Team {standing.team_id} already live in match {overlay.match_id}; "
            f"replacing its provisional standing with match {match_id}"
        )

    provisional_points = replace_provisional(standing, overlay, goals_for, goals_against)

    if overlay is None:
        overlay = StandingOverlay(standing_id=standing.standing_id)
        standing.overlay = overlay
    overlay.match_id = match_id
    overlay.temp_goals_for = goals_for
    overlay.temp_goals_against = goals_against
    overlay.temp_points = provisional_points
    return overlay


def remove_provisional(standing: Standing, overlay):
    """Take an overlay's contribution back out, leaving only finalized totals."""
    standing.goals_for -= overlay.temp_goals_for
    standing.goals_against -= overlay.temp_goals_against
    standing.points -= overlay.temp_points
    standing.last_updated = utcnow()


def ranking_key(standing: Standing):
    return (
        -standing.points,
        -(standing.goals_for - standing.goals_against),
        -standing.goals_for,
        standing.team_id,
    )


def rank(standings: Iterable[Standing]) -> List[Standing]:
    """Sort by the table order and number positions 1..N. Only ``position`` is written."""
    ordered = sorted(standings, key=ranking_key)
    for index, standing in enumerate(ordered, start=1):
        standing.position = index
    return ordered


def aggregate(league_id: str, season: str, roster: Iterable[str], finalized_matches: Iterable) -> List[Standing]:
    """
    Build a full, ranked table for one league season from scratch.

    ``roster`` is the list of member team ids; matches involving a team outside
    the roster are skipped. Matches are folded in chronological order so the
    form list reads as the last results actually played.
    """
    roster = list(roster)
    if not roster:
        raise NotFoundError(f"No teams found for league {league_id}")

    table = {}
    for index, team_id in enumerate(roster, start=1):
        if team_id not in table:
            table[team_id] = new_standing(league_id, season, team_id, position=index)

    matches = sorted(finalized_matches, key=lambda m: (m.date, m.match_id))
    for match in matches:
        if match.status != MatchStatus.ENDED.value:
            raise ValidationError(f"Match {match.match_id} is not ended (status={match.status})")
        if match.league_id != league_id or match.season != season:
            raise ValidationError(
                f"Match {match.match_id} belongs to {match.league_id}/{match.season}, not {league_id}/{season}"
            )

        home = table.get(match.home_team_id)
        away = table.get(match.away_team_id)
        if home is None or away is None:
            logger.debug(f"Skipping match {match.match_id}: team outside roster of {league_id}")
            continue

        apply_result(home, away, match.home_score, match.away_score)

    return rank(table.values())
