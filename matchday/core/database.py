from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from matchday.core.config import settings


def build_engine(url: str, **kwargs):
    """Create an engine; SQLite gets a thread-shareable connection, servers get a tuned pool."""
    if url.startswith("sqlite"):
        sqlite_engine = create_engine(url, connect_args={"check_same_thread": False}, **kwargs)

        # pysqlite defers BEGIN, which breaks SAVEPOINT; let SQLAlchemy emit it
        @event.listens_for(sqlite_engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(sqlite_engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

        return sqlite_engine

    return create_engine(
        url,
        pool_pre_ping=True,   # tests connections before using them
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )


engine = build_engine(settings.DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()

# Dependency to get DB session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def import_models():
    # Import all models here so they register on Base.metadata
    from matchday.leagues.models.leagues_models import League
    from matchday.teams.models.team_model import Team, team_leagues
    from matchday.matches.models.match_model import Match, MatchEvent
    from matchday.standings.models.standings_model import Standing, StandingOverlay


# Function to initialize the database
def init_db(bind=None):
    import_models()

    # Use context manager to ensure connection is released
    with (bind or engine).begin() as conn:
        Base.metadata.create_all(bind=conn)
