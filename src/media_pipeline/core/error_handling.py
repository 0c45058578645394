# src/media_pipeline/core/error_handling.py

import functools
import logging
import subprocess
from typing import Any, Callable, Dict, List, Type, TypeVar

from botocore.exceptions import BotoCoreError, ClientError
from PIL import UnidentifiedImageError

from .exceptions import MediaPipelineError, StorageError, TransformError

F = TypeVar("F", bound=Callable[..., Any])

# Exceptions raised by the transform libraries that always mean "bad input or
# failed encode", whatever the default classification of the wrapped function.
TRANSFORM_FAILURES = (
    UnidentifiedImageError,
    subprocess.CalledProcessError,
    subprocess.TimeoutExpired,
)


def with_error_handling(error_cls: Type[MediaPipelineError]) -> Callable[[F], F]:
    """
    Decorator translating foreign exceptions into pipeline errors.

    Pipeline errors pass through untouched. botocore failures always become
    StorageError and known transform library failures become TransformError;
    anything else is wrapped in ``error_cls``.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = logging.getLogger(func.__module__ + "." + func.__name__)
            try:
                return func(*args, **kwargs)
            except MediaPipelineError:
                raise
            except (ClientError, BotoCoreError) as e:
                logger.error(f"Storage error in '{func.__name__}': {e}", exc_info=True)
                raise StorageError(f"{func.__name__} failed: {e}") from e
            except TRANSFORM_FAILURES as e:
                logger.error(f"Transform error in '{func.__name__}': {e}", exc_info=True)
                raise TransformError(f"{func.__name__} failed: {describe_failure(e)}") from e
            except Exception as e:
                logger.error(f"Error in '{func.__name__}': {e}", exc_info=True)
                raise error_cls(f"{func.__name__} failed: {e}") from e

        return wrapper  # type: ignore[return-value]

    return decorator


def describe_failure(error: BaseException) -> str:
    """Short human readable description, including ffmpeg's stderr tail."""
    if isinstance(error, subprocess.CalledProcessError) and error.stderr:
        stderr = error.stderr
        if isinstance(stderr, bytes):
            stderr = stderr.decode("utf-8", errors="ignore")
        tail = " | ".join(line for line in stderr.strip().splitlines()[-3:])
        return f"exit status {error.returncode}: {tail}"
    return str(error)


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """

    def __init__(self, operation_name: str = "Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[Dict[str, str]] = []
        self.logger = logging.getLogger(
            self.__class__.__module__ + "." + self.__class__.__name__
        )

    def __enter__(self) -> "BatchOperationContextManager":
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i + 1}/{len(self.errors)} for item "
                    f"'{error_detail['item']}': {error_detail['error']}"
                )
        elif exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item") -> None:
        """
        Report an error for a specific item within the 'with' block.

        Args:
            error_message: The error message or exception string.
            item_identifier: A string identifying the item that failed.
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(
            f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}"
        )
