"""Pure standings arithmetic: scoring, form, ranking and full-table aggregation."""

from datetime import datetime, timedelta

import pytest

from matchday.core.exceptions import NotFoundError, ValidationError
from matchday.matches.models import Match, MatchStatus
from matchday.standings.models import StandingOverlay
from matchday.standings.services import standings_calculator as calculator

START = datetime(2024, 8, 10, 15, 0)


def result(match_id, home, away, home_score, away_score, day=0, league_id="L1", season="2024",
           status=MatchStatus.ENDED.value):
    return Match(
        match_id=match_id,
        date=START + timedelta(days=day),
        league_id=league_id,
        season=season,
        home_team_id=home,
        away_team_id=away,
        status=status,
        home_score=home_score,
        away_score=away_score,
    )


def by_team(standings):
    return {standing.team_id: standing for standing in standings}


def snapshot(standing):
    return (
        standing.team_id, standing.position, standing.played, standing.won, standing.drawn,
        standing.lost, standing.goals_for, standing.goals_against, standing.points, list(standing.form),
    )


class TestScoringRule:

    def test_outcome(self):
        assert calculator.outcome(2, 1) == "W"
        assert calculator.outcome(0, 3) == "L"
        assert calculator.outcome(1, 1) == "D"

    def test_home_win(self):
        home = calculator.new_standing("L1", "2024", "TX")
        away = calculator.new_standing("L1", "2024", "TY")
        calculator.apply_result(home, away, 2, 1)

        assert (home.played, home.won, home.points, home.goals_for, home.goals_against) == (1, 1, 3, 2, 1)
        assert home.form == ["W"]
        assert (away.played, away.lost, away.points, away.goals_for, away.goals_against) == (1, 1, 0, 1, 2)
        assert away.form == ["L"]

    def test_away_win_is_mirrored(self):
        home = calculator.new_standing("L1", "2024", "TX")
        away = calculator.new_standing("L1", "2024", "TY")
        calculator.apply_result(home, away, 0, 3)

        assert (home.lost, home.points, home.form) == (1, 0, ["L"])
        assert (away.won, away.points, away.form) == (1, 3, ["W"])

    def test_draw(self):
        home = calculator.new_standing("L1", "2024", "TX")
        away = calculator.new_standing("L1", "2024", "TY")
        calculator.apply_result(home, away, 1, 1)

        assert (home.drawn, home.points, home.form) == (1, 1, ["D"])
        assert (away.drawn, away.points, away.form) == (1, 1, ["D"])

    def test_counters_can_skip_goals_and_points(self):
        standing = calculator.new_standing("L1", "2024", "TX")
        calculator.record_result(standing, 3, 0, count_goals=False, count_points=False)

        assert (standing.played, standing.won) == (1, 1)
        assert (standing.goals_for, standing.goals_against, standing.points) == (0, 0, 0)

    @pytest.mark.parametrize("home_score,away_score", [(-1, 0), (0, -2), (None, 1), (1.5, 0)])
    def test_bad_scores_rejected(self, home_score, away_score):
        home = calculator.new_standing("L1", "2024", "TX")
        away = calculator.new_standing("L1", "2024", "TY")
        with pytest.raises(ValidationError):
            calculator.apply_result(home, away, home_score, away_score)
        assert home.played == 0


class TestForm:

    def test_push_front_and_truncate(self):
        form = []
        for symbol in ["W", "W", "D", "L", "W", "L"]:
            form = calculator.push_form(form, symbol)
        assert form == ["L", "W", "L", "D", "W"]

    def test_push_returns_new_list(self):
        form = ["W"]
        updated = calculator.push_form(form, "D")
        assert form == ["W"]
        assert updated == ["D", "W"]

    def test_six_results_keep_five_newest_first(self):
        standing = calculator.new_standing("L1", "2024", "TX")
        for goals_for, goals_against in [(1, 0), (1, 0), (0, 0), (0, 1), (2, 0), (0, 3)]:
            calculator.record_result(standing, goals_for, goals_against)
        assert len(standing.form) == 5
        assert standing.form[0] == "L"
        assert standing.played == 6


class TestProvisional:

    def test_replace_is_a_full_swap(self):
        stepwise = calculator.new_standing("L1", "2024", "TX")
        overlay = StandingOverlay(temp_goals_for=0, temp_goals_against=0, temp_points=0)
        for goals_for, goals_against in [(1, 0), (2, 0)]:
            points = calculator.replace_provisional(stepwise, overlay, goals_for, goals_against)
            overlay.temp_goals_for, overlay.temp_goals_against, overlay.temp_points = goals_for, goals_against, points

        direct = calculator.new_standing("L1", "2024", "TY")
        calculator.replace_provisional(direct, None, 2, 0)

        assert (stepwise.goals_for, stepwise.goals_against, stepwise.points) == (2, 0, 3)
        assert (direct.goals_for, direct.goals_against, direct.points) == (2, 0, 3)

    def test_replace_keeps_finalized_totals(self):
        standing = calculator.new_standing("L1", "2024", "TX")
        calculator.record_result(standing, 3, 1)  # 3 pts already final
        overlay = StandingOverlay(temp_goals_for=1, temp_goals_against=0, temp_points=3)
        standing.goals_for += 1
        standing.points += 3

        calculator.replace_provisional(standing, overlay, 1, 1)

        assert (standing.goals_for, standing.goals_against, standing.points) == (4, 2, 4)
        assert standing.played == 1

    def test_remove_provisional(self):
        standing = calculator.new_standing("L1", "2024", "TX")
        calculator.replace_provisional(standing, None, 2, 1)
        calculator.remove_provisional(
            standing, StandingOverlay(temp_goals_for=2, temp_goals_against=1, temp_points=3)
        )
        assert (standing.goals_for, standing.goals_against, standing.points) == (0, 0, 0)


class TestRanking:

    def make(self, team_id, points, goals_for, goals_against):
        standing = calculator.new_standing("L1", "2024", team_id)
        standing.points, standing.goals_for, standing.goals_against = points, goals_for, goals_against
        return standing

    def test_points_then_goal_difference_then_goals_for(self):
        table = [
            self.make("A", 10, 5, 5),
            self.make("B", 12, 1, 9),
            self.make("C", 10, 8, 4),
            self.make("D", 10, 6, 2),
        ]
        ranked = calculator.rank(table)
        # C and D both +4: C scored more
        assert [s.team_id for s in ranked] == ["B", "C", "D", "A"]
        assert [s.position for s in ranked] == [1, 2, 3, 4]

    def test_full_tie_falls_back_to_team_id(self):
        ranked = calculator.rank([self.make("TZ", 3, 2, 1), self.make("TA", 3, 2, 1)])
        assert [s.team_id for s in ranked] == ["TA", "TZ"]

    def test_positions_are_a_permutation(self):
        table = [self.make(f"T{i}", i % 3, i, 10 - i) for i in range(10)]
        ranked = calculator.rank(reversed(table))
        assert sorted(s.position for s in ranked) == list(range(1, 11))
        keys = [calculator.ranking_key(s) for s in ranked]
        assert keys == sorted(keys)


class TestAggregate:

    def test_scenario_single_home_win(self):
        standings = calculator.aggregate("L1", "2024", ["TX", "TY"], [result("M1", "TX", "TY", 2, 1)])
        table = by_team(standings)

        x, y = table["TX"], table["TY"]
        assert (x.played, x.won, x.points, x.goals_for, x.goals_against, x.form) == (1, 1, 3, 2, 1, ["W"])
        assert (y.played, y.lost, y.points, y.form) == (1, 1, 0, ["L"])
        assert (x.position, y.position) == (1, 2)

    def test_scenario_draw_tie_break(self):
        standings = calculator.aggregate("L1", "2024", ["TY", "TX"], [result("M1", "TX", "TY", 1, 1)])
        table = by_team(standings)
        assert table["TX"].points == table["TY"].points == 1
        assert table["TX"].drawn == table["TY"].drawn == 1
        # Same points, difference and goals: team id decides
        assert (table["TX"].position, table["TY"].position) == (1, 2)

    def test_empty_roster_is_not_found(self):
        with pytest.raises(NotFoundError):
            calculator.aggregate("L1", "2024", [], [])

    def test_no_matches_gives_zeroed_table(self):
        standings = calculator.aggregate("L1", "2024", ["TX", "TY", "TZ"], [])
        assert len(standings) == 3
        assert all(s.played == 0 and s.points == 0 and s.form == [] for s in standings)
        assert sorted(s.position for s in standings) == [1, 2, 3]

    def test_teams_outside_roster_are_skipped(self):
        matches = [result("M1", "TX", "GHOST", 5, 0), result("M2", "TX", "TY", 0, 1, day=1)]
        table = by_team(calculator.aggregate("L1", "2024", ["TX", "TY"], matches))
        assert "GHOST" not in table
        assert table["TX"].played == 1
        assert table["TX"].goals_for == 0

    def test_form_follows_match_dates_not_input_order(self):
        matches = [
            result("M3", "TX", "TY", 0, 1, day=3),
            result("M1", "TX", "TY", 1, 0, day=1),
            result("M2", "TX", "TY", 1, 1, day=2),
        ]
        table = by_team(calculator.aggregate("L1", "2024", ["TX", "TY"], matches))
        assert table["TX"].form == ["L", "D", "W"]
        assert table["TY"].form == ["W", "D", "L"]

    def test_rejects_unfinished_or_foreign_matches(self):
        with pytest.raises(ValidationError):
            calculator.aggregate("L1", "2024", ["TX", "TY"],
                                 [result("M1", "TX", "TY", 1, 0, status=MatchStatus.LIVE.value)])
        with pytest.raises(ValidationError):
            calculator.aggregate("L1", "2024", ["TX", "TY"], [result("M1", "TX", "TY", 1, 0, season="2023")])

    def test_aggregate_is_repeatable(self):
        roster = ["TA", "TB", "TC", "TD"]
        matches = [
            result("M1", "TA", "TB", 2, 0, day=1),
            result("M2", "TC", "TD", 1, 1, day=1),
            result("M3", "TB", "TC", 3, 2, day=2),
            result("M4", "TD", "TA", 0, 0, day=2),
            result("M5", "TA", "TC", 1, 4, day=3),
            result("M6", "TB", "TD", 2, 2, day=3),
        ]
        first = [snapshot(s) for s in calculator.aggregate("L1", "2024", roster, matches)]
        second = [snapshot(s) for s in calculator.aggregate("L1", "2024", roster, list(reversed(matches)))]
        assert first == second

    def test_table_stays_consistent(self):
        roster = ["TA", "TB", "TC"]
        matches = [
            result("M1", "TA", "TB", 2, 0, day=1),
            result("M2", "TB", "TC", 1, 1, day=2),
            result("M3", "TC", "TA", 3, 1, day=3),
            result("M4", "TB", "TA", 0, 0, day=4),
        ]
        standings = calculator.aggregate("L1", "2024", roster, matches)
        for s in standings:
            assert s.played == s.won + s.drawn + s.lost
            assert s.points == 3 * s.won + s.drawn
        assert sum(s.goals_for for s in standings) == sum(s.goals_against for s in standings)
        assert sorted(s.position for s in standings) == [1, 2, 3]
