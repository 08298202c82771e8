import unittest

from ccbalance.scheduler import Scheduler


class TestScheduler(unittest.TestCase):
    def setUp(self):
        self.scheduler = Scheduler()
        self.calls = []

    def test_call_later(self):
        self.scheduler.call_later(2.0, lambda: self.calls.append(self.scheduler.now))
        self.scheduler.advance(1.5)
        self.assertEqual(self.calls, [])
        self.scheduler.advance(0.5)
        self.assertEqual(self.calls, [2.0])
        self.scheduler.advance(5.0)
        self.assertEqual(self.calls, [2.0])

    def test_call_every(self):
        handle = self.scheduler.call_every(1.0, lambda: self.calls.append(self.scheduler.now))
        self.scheduler.advance(3.5)
        self.assertEqual(self.calls, [1.0, 2.0, 3.0])
        handle.cancel()
        self.scheduler.advance(3.0)
        self.assertEqual(len(self.calls), 3)
        self.assertEqual(self.scheduler.now, 6.5)

    def test_due_order(self):
        self.scheduler.call_later(2.0, lambda: self.calls.append("late"))
        self.scheduler.call_later(1.0, lambda: self.calls.append("early"))
        self.scheduler.call_later(1.0, lambda: self.calls.append("early-second"))
        self.scheduler.advance(5.0)
        self.assertEqual(self.calls, ["early", "early-second", "late"])

    def test_callback_may_cancel_itself(self):
        holder = {}

        def tick():
            self.calls.append(self.scheduler.now)
            if len(self.calls) == 2:
                holder["handle"].cancel()

        holder["handle"] = self.scheduler.call_every(0.5, tick)
        self.scheduler.advance(10.0)
        self.assertEqual(self.calls, [0.5, 1.0])
        self.assertEqual(self.scheduler.pending(), 0)

    def test_invalid_interval(self):
        with self.assertRaises(ValueError):
            self.scheduler.call_every(0.0, lambda: None)

    def test_run_until_condition(self):
        self.scheduler.call_every(1.0, lambda: self.calls.append(1))
        self.scheduler.run(lambda: len(self.calls) >= 4, step=0.5)
        self.assertEqual(len(self.calls), 4)
        self.assertEqual(self.scheduler.now, 4.0)


if __name__ == "__main__":
    unittest.main()
