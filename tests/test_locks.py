"""Slot locks: mutual exclusion, idempotence and lazy expiry."""
import threading

from models import db
from models.court import Court
from models.slot_lock import SlotLock
from reservations.locks import active_locks, cleanup_expired_locks, consume_lock, get_user_lock, lock_slot, unlock_slot
from reservations.results import FailureKind
from tests.conftest import NOW, TUESDAY


class TestLockSlot:
    def test_lock_sets_ttl(self, court, alice):
        lock, failure = lock_slot(court, TUESDAY, "10:00", "12:00", alice.id)
        assert failure is None
        assert (lock.start_time, lock.end_time) == ("10:00", "12:00")
        assert (lock.expires_at - lock.locked_at).total_seconds() == 300
        assert lock.locked_at == NOW

    def test_same_user_gets_same_lock(self, court, alice):
        first, _ = lock_slot(court, TUESDAY, "10:00", "12:00", alice.id)
        second, failure = lock_slot(court, TUESDAY, "10:00", "12:00", alice.id)
        assert failure is None
        assert second.id == first.id
        assert SlotLock.query.count() == 1

    def test_other_user_is_refused(self, court, alice, bob):
        lock_slot(court, TUESDAY, "10:00", "12:00", alice.id)
        lock, failure = lock_slot(court, TUESDAY, "11:00", "13:00", bob.id)
        assert lock is None
        assert failure.kind == FailureKind.UNAVAILABLE
        assert failure.reason == "locked"

    def test_expired_lock_can_be_taken(self, court, alice, bob, clock):
        lock_slot(court, TUESDAY, "10:00", "12:00", alice.id)
        clock.advance(seconds=301)
        lock, failure = lock_slot(court, TUESDAY, "10:00", "12:00", bob.id)
        assert failure is None
        assert lock.user_id == bob.id

    def test_expired_lock_is_gone_for_its_holder_too(self, court, alice, clock):
        lock_slot(court, TUESDAY, "10:00", "12:00", alice.id)
        clock.advance(minutes=10)
        assert get_user_lock(court, TUESDAY, "10:00", "12:00", alice.id) is None

    def test_ttl_comes_from_config(self, app, court, alice):
        app.config["SLOT_LOCK_TTL_SECONDS"] = 60
        lock, _ = lock_slot(court, TUESDAY, "10:00", "11:00", alice.id)
        assert (lock.expires_at - lock.locked_at).total_seconds() == 60

    def test_misaligned_range(self, court, alice):
        _, failure = lock_slot(court, TUESDAY, "10:30", "11:30", alice.id)
        assert failure.kind == FailureKind.INVALID_RANGE

    def test_race_lost_inside_transaction(self, court, alice, bob, monkeypatch):
        """Both callers passed the pre-check; the second insert must see the first lock."""
        import reservations.locks as locks_mod

        lock_slot(court, TUESDAY, "10:00", "12:00", alice.id)
        real_check = locks_mod.check_range
        monkeypatch.setattr(
            locks_mod, "check_range",
            lambda court, day, start, hours, user_id=None, clock=None: real_check(court, day, start, hours, user_id=alice.id),
        )
        lock, failure = lock_slot(court, TUESDAY, "10:00", "12:00", bob.id)
        assert lock is None
        assert failure.kind == FailureKind.CONFLICT
        assert failure.reason == "locked"


class TestUnlock:
    def test_unlock_frees_slot(self, court, alice, bob):
        lock, _ = lock_slot(court, TUESDAY, "10:00", "12:00", alice.id)
        assert unlock_slot(lock.id) == (True, None)
        assert lock_slot(court, TUESDAY, "10:00", "12:00", bob.id)[1] is None

    def test_unlock_is_idempotent(self, court, alice):
        lock, _ = lock_slot(court, TUESDAY, "10:00", "12:00", alice.id)
        lock_id = lock.id
        unlock_slot(lock_id)
        assert unlock_slot(lock_id) == (False, None)
        assert unlock_slot(999) == (False, None)

    def test_released_lock_leaves_the_session(self, court, alice, bob):
        lock, _ = lock_slot(court, TUESDAY, "10:00", "12:00", alice.id)
        unlock_slot(lock.id)
        assert lock not in db.session

        relock, failure = lock_slot(court, TUESDAY, "10:00", "12:00", bob.id)
        assert failure is None
        assert relock is not lock
        assert relock.user_id == bob.id

    def test_swept_lock_leaves_the_session(self, court, alice, clock):
        lock, _ = lock_slot(court, TUESDAY, "10:00", "11:00", alice.id)
        clock.advance(minutes=6)
        assert cleanup_expired_locks() == (1, None)
        assert lock not in db.session

    def test_cleanup_only_removes_expired(self, court, alice, bob, clock):
        lock_slot(court, TUESDAY, "10:00", "11:00", alice.id)
        clock.advance(minutes=3)
        lock_slot(court, TUESDAY, "12:00", "13:00", bob.id)
        clock.advance(minutes=3)

        deleted, failure = cleanup_expired_locks()
        assert (deleted, failure) == (1, None)
        assert [l.user_id for l in SlotLock.query.all()] == [bob.id]


class TestQueries:
    def test_active_locks_skip_expired(self, court, alice, bob, clock):
        lock_slot(court, TUESDAY, "10:00", "11:00", alice.id)
        clock.advance(minutes=4)
        lock_slot(court, TUESDAY, "12:00", "13:00", bob.id)
        assert len(active_locks(court, TUESDAY)) == 2
        clock.advance(minutes=2)
        assert [l.user_id for l in active_locks(court, TUESDAY)] == [bob.id]

    def test_consume_lock(self, court, alice):
        lock, _ = lock_slot(court, TUESDAY, "10:00", "11:00", alice.id)
        lock_id = lock.id
        assert consume_lock(lock_id) == (True, None)
        assert get_user_lock(court, TUESDAY, "10:00", "11:00", alice.id) is None


class TestConcurrentLocks:
    def test_overlapping_locks_have_one_winner(self, app, court, alice, bob):
        court_id = court.id
        barrier = threading.Barrier(2, timeout=10)
        results = {}
        ranges = {alice.id: ("10:00", "12:00"), bob.id: ("11:00", "13:00")}

        def attempt(user_id):
            with app.app_context():
                target = db.session.get(Court, court_id)
                barrier.wait()
                start, end = ranges[user_id]
                lock, failure = lock_slot(target, TUESDAY, start, end, user_id)
                results[user_id] = failure.kind if failure else "locked"
                db.session.remove()

        threads = [threading.Thread(target=attempt, args=(uid,)) for uid in ranges]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert len(results) == 2
        assert list(results.values()).count("locked") == 1
        loser = next(v for v in results.values() if v != "locked")
        assert loser in (FailureKind.CONFLICT, FailureKind.UNAVAILABLE)
        db.session.expire_all()
        assert SlotLock.query.filter_by(court_id=court_id).count() == 1
