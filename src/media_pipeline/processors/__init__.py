"""File-level batch strategies for the media pipeline."""

from typing import Callable, Dict, List

from ..core.exceptions import ConfigurationError
from ..core.models import FileOutcome, Submission
from ..core.protocols import Coordinator
from .serial import process_batch as serial_process_batch
from .multithread import process_batch as multithread_process_batch

ProcessBatchFunction = Callable[[List[Submission], Coordinator, int], List[FileOutcome]]

BATCH_PROCESSORS: Dict[str, ProcessBatchFunction] = {
    "serial": serial_process_batch,
    "multithread": multithread_process_batch,
}


def get_batch_processor(strategy: str) -> ProcessBatchFunction:
    """Look up a batch strategy by name."""
    try:
        return BATCH_PROCESSORS[strategy]
    except KeyError:
        raise ConfigurationError(
            f"Unknown processing strategy {strategy!r}, expected one of "
            f"{', '.join(BATCH_PROCESSORS)}"
        ) from None


__all__ = [
    "BATCH_PROCESSORS",
    "ProcessBatchFunction",
    "get_batch_processor",
    "serial_process_batch",
    "multithread_process_batch",
]
