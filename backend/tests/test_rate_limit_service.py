import unittest

from app.services.rate_limit_service import RateLimitService


class _Clock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class RateLimitServiceTests(unittest.TestCase):
    def test_window_counts_and_resets(self) -> None:
        clock = _Clock(1000.0)
        service = RateLimitService(clock=clock)

        decisions = [service.check("ws:event:x", limit=2, window_seconds=10) for _ in range(3)]
        self.assertEqual([decision.allowed for decision in decisions], [True, True, False])
        self.assertEqual(decisions[1].remaining, 0)
        self.assertGreater(decisions[2].retry_after_seconds, 0)

        clock.now = 1011.0
        self.assertTrue(service.check("ws:event:x", limit=2, window_seconds=10).allowed)

    def test_keys_are_independent(self) -> None:
        service = RateLimitService(clock=_Clock(50.0))
        self.assertTrue(service.check("a", limit=1, window_seconds=60).allowed)
        self.assertTrue(service.check("b", limit=1, window_seconds=60).allowed)
        self.assertFalse(service.check("a", limit=1, window_seconds=60).allowed)
        service.reset()
        self.assertTrue(service.check("a", limit=1, window_seconds=60).allowed)


if __name__ == "__main__":
    unittest.main()
