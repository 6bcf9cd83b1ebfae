"""Tests for the adaptive concurrency policy."""
import pytest

from gallery_uploader.models import UploadConfig
from gallery_uploader.orchestrator.concurrency import (
    AdaptiveConcurrency,
    initial_concurrency,
    should_degrade,
)


class TestInitialConcurrency:
    def test_small_batch_keeps_one_slot_less(self):
        # 5 files, hint 6
        assert initial_concurrency(5, 6, UploadConfig()) == 5

    def test_small_batch_never_below_one(self):
        assert initial_concurrency(3, 1, UploadConfig()) == 1

    def test_medium_batch(self):
        assert initial_concurrency(11, 6, UploadConfig()) == 2
        assert initial_concurrency(10, 6, UploadConfig()) == 5

    def test_large_batch(self):
        assert initial_concurrency(25, 6, UploadConfig()) == 2
        assert initial_concurrency(21, 6, UploadConfig(reduced_concurrency=3)) == 3

    def test_reduced_limit_never_exceeds_request(self):
        assert initial_concurrency(25, 1, UploadConfig()) == 1


def test_should_degrade():
    assert should_degrade(successful=2, failed=3, limit=2) is True
    assert should_degrade(successful=3, failed=3, limit=2) is False
    assert should_degrade(successful=0, failed=5, limit=1) is False


class TestAdaptiveConcurrency:
    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            AdaptiveConcurrency(0)

    def test_drops_to_one_when_failures_outnumber_successes(self):
        policy = AdaptiveConcurrency(2)
        policy.record_success()
        policy.record_success()
        for _ in range(3):
            policy.record_failure()

        assert policy.evaluate() == 1
        assert policy.degraded is True

    def test_degradation_is_permanent(self):
        policy = AdaptiveConcurrency(4)
        policy.record_failure()
        assert policy.evaluate() == 1

        for _ in range(10):
            policy.record_success()
            assert policy.evaluate() == 1
        assert policy.history == [4, 1]

    def test_no_change_while_healthy(self):
        policy = AdaptiveConcurrency(3)
        policy.record_success()
        policy.record_failure()
        assert policy.evaluate() == 3
        assert policy.degraded is False
