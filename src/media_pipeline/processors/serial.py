"""Serial strategy - processes files one by one."""

from typing import List

from ..core.models import FileOutcome, Submission
from ..core.protocols import Coordinator
from .common import process_submission


def process_batch(
    batch: List[Submission], coordinator: Coordinator, max_workers: int = 1
) -> List[FileOutcome]:
    """
    Processes a batch of files serially, in the current thread.

    Derivatives of each file still fan out on the coordinator's worker
    pool; only the files themselves are handled one after another.

    Args:
        batch: Submissions to process.
        coordinator: Coordinator running the per-file pipeline.
        max_workers: Ignored, present for a uniform signature.

    Returns:
        One FileOutcome per submission, in submission order.
    """
    return [process_submission(coordinator, submission) for submission in batch]
