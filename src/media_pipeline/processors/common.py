"""Common functions shared across all batch strategies."""

from ..core import get_logger
from ..core.models import FileOutcome, PipelineState, Submission
from ..core.protocols import Coordinator

logger = get_logger("processor")


def process_submission(coordinator: Coordinator, submission: Submission) -> FileOutcome:
    """
    Run one file through the coordinator, converting any unexpected fault
    into a failed FileOutcome so that the rest of the batch is unaffected.
    """
    asset = submission.asset
    try:
        return coordinator.process_one(asset, submission.profile)
    except Exception as e:
        logger.error(
            f"[{asset.filename}] Unexpected failure: {type(e).__name__}: {e}",
            exc_info=True,
        )
        return FileOutcome(
            filename=asset.filename,
            owner_id=asset.owner_id,
            kind=asset.kind,
            state=PipelineState.FAILED,
            success=False,
            error=f"Internal error: {e}",
        )
