from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from matchday.core.database import build_engine, get_db, import_models, init_db
from matchday.leagues.models import League
from matchday.matches.models import Match, MatchStatus
from matchday.teams.models import Team

# String relationships resolve once every model is registered
import_models()

KICKOFF = datetime(2024, 8, 10, 15, 0)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    # Committed fixtures stay readable without reopening a transaction on the shared connection
    Session = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def client(engine):
    from matchday.main import app

    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def league(db):
    league = League(league_id="L1", league_name="Premier League", country="England", season="2024", active=True)
    db.add(league)
    db.commit()
    return league


@pytest.fixture
def make_team(db, league):
    def _make(team_id, name=None, league_id=None):
        team = Team(team_id=team_id, team_name=name or f"Team {team_id}", short_name=team_id,
                    league_id=league_id or league.league_id)
        db.add(team)
        db.commit()
        return team
    return _make


@pytest.fixture
def teams(make_team):
    return make_team("TX", "Team X"), make_team("TY", "Team Y")


@pytest.fixture
def make_match(db, league):
    counter = {"n": 0}

    def _make(home, away, home_score=0, away_score=0, status=MatchStatus.NOT_STARTED.value,
              season=None, day=None):
        counter["n"] += 1
        match = Match(
            match_id=f"M{counter['n']}",
            date=KICKOFF + timedelta(days=day if day is not None else counter["n"]),
            league_id=league.league_id,
            season=season or league.season,
            home_team_id=home.team_id,
            away_team_id=away.team_id,
            status=status,
            home_score=home_score,
            away_score=away_score,
        )
        db.add(match)
        db.commit()
        return match
    return _make

