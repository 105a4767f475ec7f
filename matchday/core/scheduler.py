import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from matchday.core.config import settings
from matchday.core.database import SessionLocal
from matchday.core.exceptions import MatchdayError
from matchday.standings.services.match_feed import MatchFeed
from matchday.standings.services.standing_service import StandingService
from matchday.standings.services.standing_store import StandingStore

logger = logging.getLogger(__name__)


def recalculate_all_standings(session_factory=SessionLocal) -> dict:
    """Rebuild every known league season that has no match in progress."""
    db = session_factory()
    summary = {"recalculated": [], "skipped_live": [], "failed": []}
    try:
        feed = MatchFeed(db)
        service = StandingService(db, feed=feed)
        targets = sorted(set(feed.league_seasons()) | set(StandingStore(db).league_seasons()))

        for league_id, season in targets:
            if feed.live_matches(league_id, season):
                # Repair waits for a quiet table; the next run picks this season up
                summary["skipped_live"].append((league_id, season))
                continue
            try:
                service.recalculate_standings(league_id, season)
                summary["recalculated"].append((league_id, season))
            except MatchdayError as e:
                logger.error(f"❌ Recalculation of {league_id}/{season} failed: {e}")
                summary["failed"].append((league_id, season))
    finally:
        db.close()

    logger.info(
        f"🔁 Nightly standings repair: {len(summary['recalculated'])} rebuilt, "
        f"{len(summary['skipped_live'])} live, {len(summary['failed'])} failed"
    )
    return summary


def start_scheduler() -> BackgroundScheduler:
    scheduler = BackgroundScheduler()

    @scheduler.scheduled_job(
        CronTrigger(hour=settings.RECALC_CRON_HOUR, minute=settings.RECALC_CRON_MINUTE),
        id="standings_repair",
    )
    def standings_repair_job():
        logger.info("🔁 Running scheduled standings repair")
        try:
            recalculate_all_standings()
        except Exception as e:
            logger.error(f"❌ Error in standings repair: {e}")

    scheduler.start()
    logger.info("✅ Scheduler started with nightly standings repair")
    return scheduler
