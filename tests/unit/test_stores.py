"""Tests for the in-memory session store."""

from appeal_prospect.auth import InMemorySessionStore, Session


def _session(clock, subject_id=None) -> Session:
    now = clock()
    return Session(
        subject_id=subject_id,
        created_at=now,
        last_activity_at=now,
        last_rotated_at=now,
    )


class TestInMemorySessionStore:
    """Tests for session persistence."""

    def test_set_and_get(self, clock):
        """Test that a stored session can be read back."""
        store = InMemorySessionStore(clock)
        store.set("sid", _session(clock, subject_id=7), ttl_seconds=60)
        assert store.get("sid").subject_id == 7
        assert "sid" in store
        assert len(store) == 1

    def test_missing(self, clock):
        """Test that unknown ids return None."""
        assert InMemorySessionStore(clock).get("nope") is None

    def test_expiry(self, clock):
        """Test that sessions disappear after their TTL."""
        store = InMemorySessionStore(clock)
        store.set("sid", _session(clock), ttl_seconds=60)
        clock.advance(59)
        assert store.get("sid") is not None
        clock.advance(1)
        assert store.get("sid") is None

    def test_destroy(self, clock):
        """Test that destroy removes the session and tolerates unknown ids."""
        store = InMemorySessionStore(clock)
        store.set("sid", _session(clock), ttl_seconds=60)
        store.destroy("sid")
        store.destroy("sid")
        assert store.get("sid") is None

    def test_copies_isolate_callers(self, clock):
        """Test that mutating a returned session does not change the stored one."""
        store = InMemorySessionStore(clock)
        original = _session(clock, subject_id=1)
        store.set("sid", original, ttl_seconds=60)
        original.subject_id = 2
        loaded = store.get("sid")
        loaded.is_privileged = True
        again = store.get("sid")
        assert again.subject_id == 1
        assert again.is_privileged is False

    def test_last_writer_wins(self, clock):
        """Test that a later set replaces the earlier session."""
        store = InMemorySessionStore(clock)
        store.set("sid", _session(clock, subject_id=1), ttl_seconds=60)
        store.set("sid", _session(clock, subject_id=2), ttl_seconds=60)
        assert store.get("sid").subject_id == 2

    def test_expired_sessions_swept_on_write(self, clock):
        """Test that expired sessions are dropped without being read again."""
        store = InMemorySessionStore(clock)
        for i in range(50):
            store.set(f"anon-{i}", _session(clock), ttl_seconds=60)
        assert len(store) == 50

        clock.advance(86400 * 10)
        store.set("fresh", _session(clock), ttl_seconds=60)

        assert len(store) == 1
        assert "fresh" in store

    def test_sweep_keeps_live_sessions(self, clock):
        """Test that the sweep only removes expired sessions."""
        store = InMemorySessionStore(clock, sweep_interval_seconds=10)
        store.set("short", _session(clock), ttl_seconds=30)
        store.set("long", _session(clock, subject_id=1), ttl_seconds=600)

        clock.advance(60)
        store.set("other", _session(clock), ttl_seconds=600)

        assert "short" not in store
        assert store.get("long").subject_id == 1
        assert len(store) == 2

    def test_sweep_is_rate_limited(self, clock):
        """Test that writes within the sweep interval leave expired entries alone."""
        store = InMemorySessionStore(clock, sweep_interval_seconds=60)
        store.set("short", _session(clock), ttl_seconds=5)

        clock.advance(10)
        store.set("other", _session(clock), ttl_seconds=600)

        assert "short" in store
        assert store.get("short") is None
