import logging
from datetime import datetime
from io import StringIO

import pandas as pd
from sqlalchemy.orm import Session

from matchday.core.exceptions import ValidationError
from matchday.core.utils import generate_custom_id
from matchday.leagues.services.league_service import LeagueService
from matchday.matches.models import Match, MatchStatus
from matchday.standings.services.standing_service import StandingService
from matchday.teams.services.team_service import TeamService

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("Date", "HomeTeam", "AwayTeam", "FTHG", "FTAG")


class UploadService:
    """Import finished results from a football-data style CSV and rebuild the affected tables."""

    def __init__(self, db: Session):
        self.db = db
        self.league_service = LeagueService(db)
        self.team_service = TeamService(db)
        self.standing_service = StandingService(db)

    def safe_str(self, value):
        if value is None:
            return ""
        if isinstance(value, float):
            if str(value) == "nan":
                return ""
            if value.is_integer():
                # Numeric seasons come back as floats when the column has gaps
                return str(int(value))
        return str(value).strip()

    def safe_int(self, value):
        # Missing or malformed goals make the row unusable rather than 0-0
        if value is None or (isinstance(value, float) and str(value) == "nan"):
            return None
        try:
            number = int(float(value))
        except (ValueError, TypeError):
            return None
        return number if number >= 0 else None

    def parse_date(self, date: str, time: str = ""):
        value = f"{date} {time}".strip()
        for fmt in ("%d/%m/%y %H:%M", "%d/%m/%y", "%d/%m/%Y %H:%M", "%d/%m/%Y", "%Y-%m-%d %H:%M", "%Y-%m-%d"):
            try:
                return datetime.strptime(value, fmt)
            except (ValueError, TypeError):
                continue
        return None

    def read_frame(self, contents: bytes) -> pd.DataFrame:
        try:
            df = pd.read_csv(StringIO(contents.decode("utf-8")))
        except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise ValidationError(f"Could not read CSV: {e}")

        missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
        if missing:
            raise ValidationError(f"CSV is missing columns: {missing}")

        # Normalize: replace empty strings with None, NaN → None
        df = df.replace(r'^\s*$', None, regex=True)
        return df.astype(object).where(pd.notnull(df), None)

    def import_results(self, contents: bytes, league_id: str) -> dict:
        league = self.league_service.require_league(league_id)
        df = self.read_frame(contents)

        imported, duplicates, rejected = 0, 0, []
        seasons = set()

        for index, row in df.iterrows():
            date = self.parse_date(self.safe_str(row.get("Date")), self.safe_str(row.get("Time")))
            home_name = self.safe_str(row.get("HomeTeam"))
            away_name = self.safe_str(row.get("AwayTeam"))
            home_score = self.safe_int(row.get("FTHG"))
            away_score = self.safe_int(row.get("FTAG"))
            season = self.safe_str(row.get("Season")) or league.season

            if date is None or not home_name or not away_name or home_score is None or away_score is None:
                logger.warning(f"⚠️ Skipping CSV row {index + 2}: incomplete result")
                rejected.append(index + 2)
                continue

            home_team = self.team_service.resolve_team(home_name, league.league_id)
            away_team = self.team_service.resolve_team(away_name, league.league_id)
            if home_team.team_id == away_team.team_id:
                logger.warning(f"⚠️ Skipping CSV row {index + 2}: both sides resolved to {home_team.team_name}")
                rejected.append(index + 2)
                continue

            # Check for existing match
            existing_match = (
                self.db.query(Match)
                .filter(
                    Match.date == date,
                    Match.home_team_id == home_team.team_id,
                    Match.away_team_id == away_team.team_id,
                )
                .first()
            )
            if existing_match:
                duplicates += 1
                continue

            match = Match(
                match_id=generate_custom_id(self.db, Match, "M", "match_id"),
                date=date,
                league_id=league.league_id,
                season=season,
                home_team_id=home_team.team_id,
                away_team_id=away_team.team_id,
                status=MatchStatus.ENDED.value,
                home_score=home_score,
                away_score=away_score,
            )
            self.db.add(match)
            self.db.flush()
            imported += 1
            seasons.add(season)

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        recalculated = {}
        for season in sorted(seasons):
            result = self.standing_service.recalculate_standings(league.league_id, season)
            recalculated[season] = len(result["standings"])

        logger.info(f"📥 Imported {imported} results into {league.league_id} ({duplicates} duplicates)")
        return {
            "message": "Results CSV uploaded and processed successfully",
            "imported": imported,
            "duplicates": duplicates,
            "rejected_rows": rejected,
            "recalculated_seasons": recalculated,
        }
