"""Pipeline coordinator and batch aggregator."""

import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .error_handling import BatchOperationContextManager
from .exceptions import ErrorKind, ValidationError
from .models import (
    Asset,
    BatchOutcome,
    DerivativeResult,
    DerivativeSpec,
    FileOutcome,
    Operation,
    PipelineState,
    ProcessingProfile,
    Submission,
)
from .observability import LogContext
from .planner import DerivativePlanner
from .protocols import BatchProcessor, Coordinator, LoggerProtocol, RenditionWorker
from .staging import StagingArea

SubmissionLike = Union[Submission, Asset, Tuple[Asset, Optional[ProcessingProfile]]]


class PipelineCoordinator(Coordinator):
    """
    Runs plan -> dispatch -> collect -> finalize for one asset at a time.

    All rendition workers, for every asset handled by this coordinator, share
    one bounded thread pool, so at most ``max_workers`` transforms run at
    once in the process. ``process_one`` may be called from several threads.
    """

    def __init__(
        self,
        workers: Mapping[Operation, RenditionWorker],
        logger: LoggerProtocol,
        staging_dir: Union[str, Path],
        planner: Optional[DerivativePlanner] = None,
        max_workers: int = 4,
    ):
        self._workers = dict(workers)
        self._logger = logger
        self._staging_dir = Path(staging_dir)
        self._planner = planner or DerivativePlanner()
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="rendition"
        )

    def __enter__(self) -> "PipelineCoordinator":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def close(self) -> None:
        """Wait for in-flight workers and release the pool."""
        self._executor.shutdown(wait=True)

    def _transition(self, state: PipelineState, context: LogContext) -> PipelineState:
        self._logger.debug(f"State -> {state.value}", context)
        return state

    def process_one(
        self, asset: Asset, profile: Optional[ProcessingProfile] = None
    ) -> FileOutcome:
        """
        Produce every planned derivative of ``asset``.

        Never raises for planning, transform, staging or storage failures:
        a planning failure yields a rejected outcome with no derivative
        attempted, any other failure is recorded on its derivative.
        """
        start_time = time.time()
        log_context = LogContext(
            operation="process_file",
            component="pipeline_coordinator",
            owner_id=asset.owner_id,
        ).with_metadata(filename=asset.filename, kind=asset.kind.value)

        state = self._transition(PipelineState.PLANNING, log_context)
        try:
            specs = self._planner.plan(asset.kind, profile)
        except ValidationError as e:
            state = self._transition(PipelineState.REJECTED, log_context)
            self._logger.warning(f"Rejected file: {e}", log_context)
            return FileOutcome(
                filename=asset.filename,
                owner_id=asset.owner_id,
                kind=asset.kind,
                state=state,
                success=False,
                rejection_reason=str(e),
                processing_time=time.time() - start_time,
            )

        with StagingArea(self._staging_dir) as staging:
            state = self._transition(PipelineState.DISPATCHING, log_context)
            futures: Dict[Future, Tuple[int, DerivativeSpec]] = {
                self._executor.submit(self._run_worker, asset, spec, staging, log_context): (
                    index,
                    spec,
                )
                for index, spec in enumerate(specs)
            }

            state = self._transition(PipelineState.COLLECTING, log_context)
            collected: Dict[int, DerivativeResult] = {}
            for future in as_completed(futures):
                index, spec = futures[future]
                try:
                    collected[index] = future.result()
                except Exception as e:
                    self._logger.error(
                        f"Worker crashed for {spec.variant}: {e}", log_context
                    )
                    collected[index] = _failed_result(spec, ErrorKind.INTERNAL, str(e))

            state = self._transition(PipelineState.FINALIZING, log_context)
            staging.release_all()

        derivatives = [collected[index] for index in range(len(specs))]
        success = all(d.success for d in derivatives if d.required)
        metadata: Dict[str, Any] = {}
        for derivative in derivatives:
            if derivative.metadata.get("duration_seconds") is not None:
                metadata["duration_seconds"] = derivative.metadata["duration_seconds"]

        state = self._transition(PipelineState.DONE, log_context)
        outcome = FileOutcome(
            filename=asset.filename,
            owner_id=asset.owner_id,
            kind=asset.kind,
            state=state,
            success=success,
            derivatives=derivatives,
            metadata=metadata,
            processing_time=time.time() - start_time,
        )
        self._logger.info(
            "Processed file",
            log_context,
            success=success,
            failed=",".join(d.variant for d in outcome.failed_derivatives) or "none",
            processing_time_ms=round(outcome.processing_time * 1000, 1),
        )
        return outcome

    def _run_worker(
        self,
        asset: Asset,
        spec: DerivativeSpec,
        staging: StagingArea,
        log_context: LogContext,
    ) -> DerivativeResult:
        worker = self._workers.get(spec.operation)
        if worker is None:
            return _failed_result(
                spec, ErrorKind.INTERNAL, f"No worker registered for {spec.operation.value}"
            )
        return worker.run(asset, spec, staging, log_context)


def _failed_result(spec: DerivativeSpec, kind: ErrorKind, message: str) -> DerivativeResult:
    return DerivativeResult(
        variant=spec.variant,
        required=spec.required,
        success=False,
        error_kind=kind,
        error=message,
    )


def as_submission(item: SubmissionLike) -> Submission:
    """Accept a Submission, a bare Asset, or an (asset, profile) pair."""
    if isinstance(item, Submission):
        return item
    if isinstance(item, Asset):
        return Submission(asset=item)
    asset, profile = item
    return Submission(asset=asset, profile=profile or ProcessingProfile())


def summarize_failure(outcome: FileOutcome) -> str:
    if outcome.rejection_reason:
        return f"rejected: {outcome.rejection_reason}"
    if outcome.error:
        return outcome.error
    return "; ".join(
        f"{d.variant} ({d.error_kind.value if d.error_kind else 'unknown'}): {d.error}"
        for d in outcome.failed_derivatives
        if d.required
    )


class BatchAggregator(BatchProcessor):
    """Runs the coordinator over many files, isolating each file's failures."""

    def __init__(
        self,
        coordinator: Coordinator,
        logger: LoggerProtocol,
        strategy: str = "multithread",
        max_concurrent_files: int = 2,
    ):
        # Deferred: the processors package imports media_pipeline.core.
        from ..processors import get_batch_processor

        self._coordinator = coordinator
        self._logger = logger
        self._process_batch = get_batch_processor(strategy)
        self.strategy = strategy
        self.max_concurrent_files = max_concurrent_files

    def process_many(self, submissions: Iterable[SubmissionLike]) -> BatchOutcome:
        """
        Process every submission; results keep submission order.

        One file's rejection or failure never affects another file.
        """
        items: List[Submission] = [as_submission(s) for s in submissions]
        start_time = time.time()

        with BatchOperationContextManager(
            operation_name=f"Media batch of {len(items)} file(s) via {self.strategy}"
        ) as batch_manager:
            outcomes = self._process_batch(items, self._coordinator, self.max_concurrent_files)
            for outcome in outcomes:
                if not outcome.success:
                    batch_manager.add_error(summarize_failure(outcome), outcome.filename)

        batch = BatchOutcome(results=outcomes)
        self._logger.info(
            "Batch processing completed",
            total=batch.total,
            successful=batch.successful,
            failed=batch.failed,
            processing_time_ms=round((time.time() - start_time) * 1000, 1),
        )
        return batch
