"""Multithreaded strategy - several files in flight at once."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

from ..core.models import FileOutcome, Submission
from ..core.protocols import Coordinator
from .common import process_submission


def process_batch(
    batch: List[Submission], coordinator: Coordinator, max_workers: int = 2
) -> List[FileOutcome]:
    """
    Process a batch of files on a file-level thread pool.

    The file-level pool is separate from the coordinator's rendition pool,
    so a file waiting on its derivatives never holds a rendition slot.

    Args:
        batch: Submissions to process
        coordinator: Coordinator running the per-file pipeline
        max_workers: Maximum number of files in flight

    Returns:
        One FileOutcome per submission, in submission order
    """
    if not batch:
        return []

    results: List[Optional[FileOutcome]] = [None] * len(batch)
    with ThreadPoolExecutor(
        max_workers=max(1, min(max_workers, len(batch))), thread_name_prefix="file"
    ) as executor:
        future_to_index: Dict = {
            executor.submit(process_submission, coordinator, submission): index
            for index, submission in enumerate(batch)
        }

        # Collect results as they complete, store them by submission index
        for future in as_completed(future_to_index):
            index = future_to_index[future]
            results[index] = future.result()

    return results  # type: ignore[return-value]
