from datetime import datetime, timedelta, timezone

from opentextbook.core.sessions import SessionStore


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds: int):
        self.now += timedelta(seconds=seconds)


def test_session_has_fixed_absolute_expiry():
    clock = FakeClock()
    store = SessionStore(max_age_seconds=100, clock=clock)
    session = store.create(user_id=7)

    clock.advance(60)
    assert store.get(session.id).user_id == 7
    # reading does not extend the lifetime
    clock.advance(40)
    assert store.get(session.id) is None


def test_flashes_are_read_once_in_order():
    store = SessionStore()
    session = store.create()
    store.add_flash(session.id, "success", "one")
    store.add_flash(session.id, "success", "two")
    assert store.pop_flashes(session.id) == [("success", "one"), ("success", "two")]
    assert store.pop_flashes(session.id) == []


def test_destroy_and_unknown_ids():
    store = SessionStore()
    session = store.create()
    store.destroy(session.id)
    assert store.get(session.id) is None
    assert store.pop_flashes("missing") == []
    store.add_flash("missing", "danger", "ignored")


def test_prune_drops_only_expired_sessions():
    clock = FakeClock()
    store = SessionStore(max_age_seconds=10, check_period_seconds=1000, clock=clock)
    old = store.create()
    clock.advance(5)
    young = store.create()
    clock.advance(6)

    assert store.prune() == 1
    assert len(store) == 1
    assert store.get(young.id) is not None
    assert store.get(old.id) is None
