"""
Tests for SyncState, the bookkeeping shared by the watcher and the syncer.
"""
import os
import threading
import unittest

from sftpsync.state.sync_state import SyncState


class FakeClock:
    def __init__(self, now=1_000_000):
        self.now = now

    def __call__(self):
        return self.now


class TestDownloadWindow(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.state = SyncState(recent_download_window_ms=3000, clock=self.clock)

    def test_unknown_path(self):
        self.assertFalse(self.state.is_recently_downloaded("/tmp/never"))
        self.assertIsNone(self.state.downloaded_timestamp("/tmp/never"))

    def test_inside_window(self):
        self.state.mark_downloaded("/data/a.txt")
        self.clock.now += 2999
        self.assertTrue(self.state.is_recently_downloaded("/data/a.txt"))

    def test_window_is_exclusive(self):
        self.state.mark_downloaded("/data/a.txt")
        self.clock.now += 3000
        self.assertFalse(self.state.is_recently_downloaded("/data/a.txt"))

    def test_remark_refreshes(self):
        self.state.mark_downloaded("/data/a.txt")
        self.clock.now += 2500
        self.state.mark_downloaded("/data/a.txt")
        self.clock.now += 2500
        self.assertTrue(self.state.is_recently_downloaded("/data/a.txt"))
        self.assertEqual(self.state.downloaded_timestamp("/data/a.txt"), self.clock.now - 2500)

    def test_paths_are_normalised(self):
        self.state.mark_downloaded("/data/sub/../a.txt")
        self.assertTrue(self.state.is_recently_downloaded("/data/a.txt"))

    def test_relative_path_is_absolutised(self):
        self.state.mark_downloaded("a.txt")
        self.assertTrue(self.state.is_recently_downloaded(os.path.abspath("a.txt")))

    def test_none_is_a_noop(self):
        self.state.mark_downloaded(None)
        self.state.mark_uploaded(None, 5)
        self.state.forget(None)
        self.assertFalse(self.state.is_recently_downloaded(None))
        self.assertIsNone(self.state.last_uploaded(None))
        self.assertEqual(self.state.tracked_paths(), frozenset())


class TestUploadsAndForget(unittest.TestCase):

    def setUp(self):
        self.state = SyncState()

    def test_mark_uploaded(self):
        self.state.mark_uploaded("/data/b.txt", 1700000000123)
        self.assertEqual(self.state.last_uploaded("/data/b.txt"), 1700000000123)

    def test_mark_uploaded_overwrites(self):
        self.state.mark_uploaded("/data/b.txt", 1)
        self.state.mark_uploaded("/data/b.txt", 2)
        self.assertEqual(self.state.last_uploaded("/data/b.txt"), 2)

    def test_is_tracked(self):
        self.assertFalse(self.state.is_tracked("/data/x"))
        self.state.mark_uploaded("/data/x", 1)
        self.assertTrue(self.state.is_tracked("/data/x"))
        self.state.mark_downloaded("/data/y")
        self.assertTrue(self.state.is_tracked("/data/y"))

    def test_forget_clears_both_maps(self):
        self.state.mark_downloaded("/data/z")
        self.state.mark_uploaded("/data/z", 10)
        self.assertEqual(self.state.tracked_paths(), frozenset({os.path.abspath("/data/z")}))
        self.state.forget("/data/z")
        self.assertFalse(self.state.is_tracked("/data/z"))
        self.assertEqual(self.state.tracked_paths(), frozenset())

    def test_forget_unknown_is_harmless(self):
        self.state.forget("/data/never")
        self.state.forget_downloaded("/data/never")
        self.state.forget_uploaded("/data/never")

    def test_concurrent_access(self):
        errors = []

        def worker(n):
            try:
                for i in range(500):
                    path = f"/data/{n}/{i % 7}"
                    self.state.mark_downloaded(path)
                    self.state.mark_uploaded(path, i)
                    self.state.is_recently_downloaded(path)
                    self.state.forget(path)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(errors, [])
        self.assertEqual(self.state.tracked_paths(), frozenset())


if __name__ == "__main__":
    unittest.main()
