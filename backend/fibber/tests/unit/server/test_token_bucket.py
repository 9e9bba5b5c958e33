"""Tests for the token bucket rate limiter."""

import pytest

from fibber.server.rate_limit import TokenBucket


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestTokenBucket:
    def test_burst_allows_up_to_capacity(self):
        bucket = TokenBucket(rate=1.0, burst=5, clock=_Clock())

        assert all(bucket.consume() for _ in range(5))
        assert bucket.consume() is False

    def test_refill_restores_tokens(self):
        """Tokens come back at the configured rate."""
        clock = _Clock()
        bucket = TokenBucket(rate=10.0, burst=5, clock=clock)
        for _ in range(5):
            bucket.consume()

        clock.now += 0.1
        assert bucket.consume() is True
        assert bucket.consume() is False

    def test_refill_capped_at_burst(self):
        clock = _Clock()
        bucket = TokenBucket(rate=10.0, burst=3, clock=clock)
        bucket.consume()

        clock.now += 100.0
        results = [bucket.consume() for _ in range(4)]

        assert results == [True, True, True, False]

    def test_sustained_rate_enforcement(self):
        clock = _Clock()
        bucket = TokenBucket(rate=2.0, burst=2, clock=clock)
        bucket.consume()
        bucket.consume()

        clock.now += 0.25
        assert bucket.consume() is False
        clock.now += 0.25
        assert bucket.consume() is True

    @pytest.mark.parametrize(("rate", "burst"), [(0, 5), (-1.0, 5), (1.0, 0)])
    def test_invalid_parameters(self, rate, burst):
        with pytest.raises(ValueError, match="rate"):
            TokenBucket(rate=rate, burst=burst)
