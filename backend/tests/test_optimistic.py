import unittest

from simdesk.services.optimistic import optimistic_write
from simdesk.services.row_store import RowStoreError


class OptimisticWriteTests(unittest.TestCase):
    def setUp(self):
        self.local = []
        self.remote = []

    def test_success_applies_both(self):
        ok = optimistic_write(
            lambda: self.local.append("x"),
            lambda: self.remote.append("x"),
            "adding x",
        )
        self.assertTrue(ok)
        self.assertEqual(self.local, ["x"])
        self.assertEqual(self.remote, ["x"])

    def test_remote_failure_is_logged_and_local_kept(self):
        def failing_write():
            raise RowStoreError("connection refused")

        with self.assertLogs("simdesk.services.optimistic", level="ERROR") as logs:
            ok = optimistic_write(lambda: self.local.append("x"), failing_write, "adding x")

        self.assertFalse(ok)
        self.assertEqual(self.local, ["x"])
        self.assertIn("Error adding x", logs.output[0])

    def test_local_applied_before_remote(self):
        order = []
        optimistic_write(lambda: order.append("local"), lambda: order.append("remote"), "ordering")
        self.assertEqual(order, ["local", "remote"])

    def test_remote_only_write(self):
        self.assertTrue(optimistic_write(None, lambda: self.remote.append("y"), "remote only"))
        self.assertEqual(self.remote, ["y"])

    def test_other_errors_propagate(self):
        def broken_write():
            raise KeyError("bug")

        with self.assertRaises(KeyError):
            optimistic_write(None, broken_write, "broken")


if __name__ == "__main__":
    unittest.main()
