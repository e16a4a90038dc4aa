# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import pytest

from circuit2mqtt.retry import RetryPolicy


class TestRetryPolicy:
    def test_default_is_constant_interval(self):
        policy = RetryPolicy()

        assert [policy.get_delay(n) for n in range(4)] == [5.0, 5.0, 5.0, 5.0]

    def test_backoff_grows_geometrically(self):
        policy = RetryPolicy(interval=1.0, backoff=2.0)

        assert [policy.get_delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_backoff_is_capped(self):
        policy = RetryPolicy(interval=1.0, backoff=2.0, max_interval=3.0)

        assert policy.get_delay(5) == 3.0

    def test_jitter_stays_within_bounds(self):
        policy = RetryPolicy(interval=2.0, jitter=0.5)

        for n in range(20):
            assert 2.0 <= policy.get_delay(n) <= 3.0

    @pytest.mark.parametrize("kwargs", [{"interval": -1.0}, {"backoff": 0.5}])
    def test_rejects_bad_arguments(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)

    def test_repr(self):
        assert "interval=5.0s" in repr(RetryPolicy())
