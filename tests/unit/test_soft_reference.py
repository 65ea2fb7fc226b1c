"""
Unit tests for SoftReference
"""

from blobcache.soft_reference import SoftReference


class TestSoftReference:

    def test_get_returns_referent(self, clock):
        ref = SoftReference(b"payload", clock=clock)

        assert ref.get() == b"payload"
        assert not ref.cleared

    def test_clear_drops_referent(self, clock):
        ref = SoftReference(b"payload", clock=clock)

        assert ref.clear() is True
        assert ref.get() is None
        assert ref.cleared

    def test_second_clear_is_noop(self, clock):
        calls = []
        ref = SoftReference(b"payload", callback=calls.append, clock=clock)

        ref.clear()
        assert ref.clear() is False
        assert calls == [ref]

    def test_get_refreshes_idle_time(self, clock):
        ref = SoftReference(b"payload", clock=clock)
        clock.advance(30)
        assert ref.idle_seconds() == 30

        ref.get()
        assert ref.idle_seconds() == 0

    def test_peek_does_not_refresh(self, clock):
        ref = SoftReference(b"payload", clock=clock)
        clock.advance(30)

        assert ref.peek() == b"payload"
        assert ref.idle_seconds() == 30

    def test_get_on_cleared_keeps_timestamp(self, clock):
        ref = SoftReference(b"payload", clock=clock)
        ref.clear()
        clock.advance(5)

        ref.get()
        assert ref.idle_seconds() == 5
