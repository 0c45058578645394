"""Tests for file-level batch strategies."""

import threading
import time

import pytest

from media_pipeline.core.exceptions import ConfigurationError
from media_pipeline.core.models import Asset, FileOutcome, PipelineState, Submission
from media_pipeline.core.protocols import Coordinator
from media_pipeline.processors import BATCH_PROCESSORS, get_batch_processor
from media_pipeline.processors.common import process_submission


class RecordingCoordinator(Coordinator):
    """Coordinator stub: sleeps a little and fails on request."""

    def __init__(self, fail_on=(), delay_seconds=0.01):
        self.fail_on = set(fail_on)
        self.delay_seconds = delay_seconds
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def process_one(self, asset, profile=None):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            time.sleep(self.delay_seconds)
            if asset.filename in self.fail_on:
                raise RuntimeError(f"coordinator crashed on {asset.filename}")
            return FileOutcome(filename=asset.filename, owner_id=asset.owner_id, success=True)
        finally:
            with self._lock:
                self.active -= 1


def _submissions(count):
    return [
        Submission(
            asset=Asset(
                data=b"x", content_type="image/png", owner_id="u1", filename=f"{i}.png"
            )
        )
        for i in range(count)
    ]


def test_registry():
    assert set(BATCH_PROCESSORS) == {"serial", "multithread"}
    with pytest.raises(ConfigurationError, match="Unknown processing strategy"):
        get_batch_processor("ray")


@pytest.mark.parametrize("strategy", ["serial", "multithread"])
def test_results_keep_submission_order(strategy):
    coordinator = RecordingCoordinator()
    outcomes = get_batch_processor(strategy)(_submissions(6), coordinator, 3)

    assert [o.filename for o in outcomes] == [f"{i}.png" for i in range(6)]
    assert all(o.success for o in outcomes)


@pytest.mark.parametrize("strategy", ["serial", "multithread"])
def test_crash_is_isolated_to_its_file(strategy):
    coordinator = RecordingCoordinator(fail_on={"2.png"})
    outcomes = get_batch_processor(strategy)(_submissions(4), coordinator, 2)

    assert [o.success for o in outcomes] == [True, True, False, True]
    assert outcomes[2].error == "Internal error: coordinator crashed on 2.png"
    assert outcomes[2].state == PipelineState.FAILED
    assert outcomes[1].state == PipelineState.DONE


def test_multithread_bounds_files_in_flight():
    coordinator = RecordingCoordinator(delay_seconds=0.05)
    get_batch_processor("multithread")(_submissions(8), coordinator, 2)
    assert coordinator.peak <= 2


def test_serial_runs_one_file_at_a_time():
    coordinator = RecordingCoordinator()
    get_batch_processor("serial")(_submissions(3), coordinator, 5)
    assert coordinator.peak == 1


def test_empty_batch():
    assert get_batch_processor("multithread")([], RecordingCoordinator(), 2) == []


def test_process_submission_passes_profile():
    seen = {}

    class ProfileCoordinator(Coordinator):
        def process_one(self, asset, profile=None):
            seen["profile"] = profile
            return FileOutcome(filename=asset.filename, success=True)

    submission = _submissions(1)[0]
    assert process_submission(ProfileCoordinator(), submission).success
    assert seen["profile"] is submission.profile
