import unittest
from unittest.mock import MagicMock, patch

from redis import exceptions as redis_exceptions

from alumni_backend.kv import (
    InMemoryKvStore,
    KvConflictError,
    RedisKvStore,
    SqlKvStore,
    update_with_retry,
)


class KvStoreContract:
    """Behaviour shared by every store; mixed into concrete TestCases."""

    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()

    def test_set_get_and_overwrite(self):
        self.assertIsNone(self.store.get("alumni:1"))
        self.store.set("alumni:1", {"id": "1", "name": "Ada"})
        self.store.set("alumni:1", {"id": "1", "name": "Grace"})
        self.assertEqual(self.store.get("alumni:1"), {"id": "1", "name": "Grace"})

    def test_prefix_scan_is_ordered_and_scoped(self):
        self.store.set("event:b", {"id": "b"})
        self.store.set("event:a", {"id": "a"})
        self.store.set("event-archive:a", {"id": "x"})
        self.store.set("events", {"id": "y"})
        entries = self.store.get_by_prefix("event:")
        self.assertEqual([e.key for e in entries], ["event:a", "event:b"])
        self.assertEqual(entries[0].value, {"id": "a"})

    def test_prefix_scan_treats_wildcards_literally(self):
        self.store.set("a_b:1", {"id": "1"})
        self.store.set("axb:1", {"id": "2"})
        self.store.set("a%b:1", {"id": "3"})
        self.assertEqual([e.key for e in self.store.get_by_prefix("a_b:")], ["a_b:1"])

    def test_delete(self):
        self.store.set("contact:1", {"id": "1"})
        self.store.delete("contact:1")
        self.assertIsNone(self.store.get("contact:1"))
        self.store.delete("contact:1")

    def test_returned_values_are_copies(self):
        self.store.set("forum-post:1", {"likes": 0, "tags": ["a"]})
        value = self.store.get("forum-post:1")
        value["likes"] = 5
        value["tags"].append("b")
        self.assertEqual(self.store.get("forum-post:1"), {"likes": 0, "tags": ["a"]})

    def test_compare_and_set(self):
        self.store.set("campaign:1", {"raised": 0})
        value, version = self.store.get_versioned("campaign:1")
        self.assertEqual(value, {"raised": 0})

        self.assertTrue(self.store.compare_and_set("campaign:1", {"raised": 10}, version))
        # The old version is stale now.
        self.assertFalse(self.store.compare_and_set("campaign:1", {"raised": 20}, version))
        self.assertEqual(self.store.get("campaign:1"), {"raised": 10})

    def test_compare_and_set_on_absent_key(self):
        self.assertEqual(self.store.get_versioned("user:1"), (None, None))
        self.assertTrue(self.store.compare_and_set("user:1", {"id": "1"}, None))
        self.assertFalse(self.store.compare_and_set("user:1", {"id": "2"}, None))
        self.assertEqual(self.store.get("user:1"), {"id": "1"})

    def test_update_with_retry(self):
        self.store.set("problem:1", {"submittedIdeasCount": 2})

        def bump(record):
            record["submittedIdeasCount"] += 1
            return record

        updated = update_with_retry(self.store, "problem:1", bump)
        self.assertEqual(updated, {"submittedIdeasCount": 3})
        self.assertEqual(self.store.get("problem:1"), {"submittedIdeasCount": 3})
        self.assertIsNone(update_with_retry(self.store, "problem:missing", bump))


class InMemoryKvStoreTests(KvStoreContract, unittest.TestCase):
    def make_store(self):
        return InMemoryKvStore()

    def test_reset(self):
        self.store.set("user:1", {"id": "1"})
        self.store.reset()
        self.assertEqual(self.store.get_by_prefix("user:"), [])


class SqlKvStoreTests(KvStoreContract, unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL store.
    """

    def make_store(self):
        return SqlKvStore("sqlite+pysqlite:///:memory:")

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            SqlKvStore("")


class UpdateWithRetryTests(unittest.TestCase):
    def test_retries_until_write_wins(self):
        store = MagicMock()
        store.get_versioned.side_effect = [({"likes": 1}, 1), ({"likes": 2}, 2)]
        store.compare_and_set.side_effect = [False, True]

        def like(record):
            record["likes"] += 1
            return record

        updated = update_with_retry(store, "forum-post:1", like)
        self.assertEqual(updated, {"likes": 3})
        self.assertEqual(store.compare_and_set.call_count, 2)
        store.compare_and_set.assert_called_with("forum-post:1", {"likes": 3}, 2)

    def test_gives_up_after_attempts(self):
        store = MagicMock()
        store.get_versioned.return_value = ({"likes": 1}, 1)
        store.compare_and_set.return_value = False
        with self.assertRaises(KvConflictError) as ctx:
            update_with_retry(store, "forum-post:1", lambda r: r, attempts=3)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertEqual(store.compare_and_set.call_count, 3)


class RedisKvStoreTests(unittest.TestCase):
    def setUp(self):
        patcher = patch("alumni_backend.kv.redis.Redis.from_url")
        self.from_url = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = self.from_url.return_value
        self.store = RedisKvStore(url="redis://localhost:6379/0", key_prefix="test:")

    def test_get_and_set_use_namespace(self):
        self.client.get.return_value = b'{"id": "1"}'
        self.assertEqual(self.store.get("alumni:1"), {"id": "1"})
        self.client.get.assert_called_with("test:alumni:1")

        self.store.set("alumni:1", {"id": "1"})
        self.client.set.assert_called_with("test:alumni:1", '{"id": "1"}')

    def test_get_by_prefix_escapes_and_strips_namespace(self):
        self.client.scan_iter.return_value = iter([b"test:a_b:2", b"test:a_b:1", b"test:a_b:3"])
        self.client.mget.return_value = [b'{"id": "1"}', b'{"id": "2"}', None]
        entries = self.store.get_by_prefix("a_b:")
        self.client.scan_iter.assert_called_with(match="test:a_b:*")
        self.client.mget.assert_called_with([b"test:a_b:1", b"test:a_b:2", b"test:a_b:3"])
        self.assertEqual([e.key for e in entries], ["a_b:1", "a_b:2"])

        self.client.scan_iter.return_value = iter([])
        self.store.get_by_prefix("odd*[kind]:")
        self.client.scan_iter.assert_called_with(match="test:odd\\*\\[kind\\]:*")

    def test_compare_and_set_detects_stale_version(self):
        pipe = self.client.pipeline.return_value.__enter__.return_value
        pipe.get.return_value = b'{"likes": 2}'
        self.assertFalse(self.store.compare_and_set("forum-post:1", {"likes": 2}, b'{"likes": 1}'))
        pipe.unwatch.assert_called_once()
        pipe.execute.assert_not_called()

    def test_compare_and_set_writes_when_current(self):
        pipe = self.client.pipeline.return_value.__enter__.return_value
        pipe.get.return_value = b'{"likes": 1}'
        self.assertTrue(self.store.compare_and_set("forum-post:1", {"likes": 2}, b'{"likes": 1}'))
        pipe.watch.assert_called_with("test:forum-post:1")
        pipe.set.assert_called_with("test:forum-post:1", '{"likes": 2}')
        pipe.execute.assert_called_once()

    def test_compare_and_set_watch_error_loses_race(self):
        pipe = self.client.pipeline.return_value.__enter__.return_value
        pipe.get.return_value = b'{"likes": 1}'
        pipe.execute.side_effect = redis_exceptions.WatchError()
        self.assertFalse(self.store.compare_and_set("forum-post:1", {"likes": 2}, b'{"likes": 1}'))


if __name__ == "__main__":
    unittest.main()
