import threading
from contextlib import contextmanager


class StandingsLockRegistry:
    """
    One re-entrant lock per (league, season) table.

    Every standings mutation, and the match change that triggers it, runs
    fetch -> mutate -> persist -> rerank while holding its table's lock, so
    updates for one match are applied in arrival order and a rebuild never
    interleaves with them.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def lock_for(self, league_id: str, season: str) -> threading.RLock:
        key = (league_id, season)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, league_id: str, season: str, session=None):
        """
        Hold the table lock for the duration of the block.

        When another thread owns the lock and ``session`` is given, the
        session's transaction is committed before waiting. An open read
        transaction would otherwise keep the owner from committing on SQLite,
        and the rows read so far are reloaded once the lock is ours.
        """
        lock = self.lock_for(league_id, season)
        if not lock.acquire(blocking=False):
            if session is not None:
                session.commit()
            lock.acquire()
        try:
            yield
        finally:
            lock.release()


standings_locks = StandingsLockRegistry()
