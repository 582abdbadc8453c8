"""Unit tests for ShardedLock."""

import threading

import pytest

from network.locks import ShardedLock


class TestShardedLock:
    """Test shard addressing and acquisition."""

    def test_same_key_same_shard(self):
        locks = ShardedLock(16)
        assert locks.shard_for("COMPANY:domain:acme.com") == locks.shard_for("COMPANY:domain:acme.com")

    def test_shard_in_range(self):
        locks = ShardedLock(8)
        assert all(0 <= locks.shard_for(f"key-{i}") < 8 for i in range(100))

    def test_rejects_zero_shards(self):
        with pytest.raises(ValueError):
            ShardedLock(0)

    def test_hold_releases_on_exit(self):
        locks = ShardedLock(4)
        with locks.hold(["a", "b", "c"]):
            pass
        # Everything free again
        with locks.hold(["a", "b", "c"]):
            pass

    def test_hold_releases_on_error(self):
        locks = ShardedLock(4)
        with pytest.raises(RuntimeError):
            with locks.hold_one("a"):
                raise RuntimeError("boom")
        with locks.hold_one("a"):
            pass

    def test_blocks_other_thread(self):
        locks = ShardedLock(4)
        acquired = threading.Event()

        def other():
            with locks.hold_one("a"):
                acquired.set()

        with locks.hold_one("a"):
            t = threading.Thread(target=other)
            t.start()
            assert not acquired.wait(0.05)
        t.join(timeout=1)
        assert acquired.is_set()
