"""
Custom Exception Classes for idxbench

This module defines the error taxonomy used throughout the ingestion,
evaluation and benchmarking pipeline. Every exception carries a readable
message plus the context needed to diagnose a failure without re-running
(path, expected vs. actual extents, backend or stage name).

I/O and format errors abort a run, validation errors indicate a wiring bug,
backend initialization errors are recovered locally by the benchmark runner.
"""

from typing import Optional, Union
from pathlib import Path


class IdxBenchError(Exception):
    """
    Base class for all idxbench errors.

    Attributes:
        message (str): Explanation of the error
    """

    def __init__(self, message: str = "An idxbench error occurred.") -> None:
        super().__init__(message)
        self.message = message


class DataIOError(IdxBenchError, OSError):
    """
    Exception raised when a dataset or model-state file cannot be opened or read.

    Also an ``OSError`` so callers that only know about the builtin I/O
    hierarchy still catch it.

    Attributes:
        message (str): Explanation of the error
        path (Optional[str]): The file that failed
    """

    def __init__(
        self,
        message: str = "Failed to read file.",
        path: Optional[Union[str, Path]] = None,
    ) -> None:
        super().__init__(message)
        self.path = str(path) if path is not None else None

    def __str__(self) -> str:
        return self.message


class FormatError(DataIOError):
    """
    Exception raised when an IDX header disagrees with the file contents.

    Covers short headers, wrong magic numbers and payloads whose size does not
    match the extents declared in the header.

    Attributes:
        message (str): Explanation of the error
        path (Optional[str]): The offending file
        expected_bytes (Optional[int]): Byte count implied by the header
        actual_bytes (Optional[int]): Byte count actually present
    """

    def __init__(
        self,
        message: str = "Malformed IDX file.",
        path: Optional[Union[str, Path]] = None,
        expected_bytes: Optional[int] = None,
        actual_bytes: Optional[int] = None,
    ) -> None:
        super().__init__(message, path=path)
        self.expected_bytes = expected_bytes
        self.actual_bytes = actual_bytes


class ValidationError(IdxBenchError, ValueError):
    """
    Exception raised for invariant violations such as mismatched array lengths
    or labels outside the valid class range.
    """

    def __init__(self, message: str = "Validation failed.") -> None:
        super().__init__(message)


class BackendInitError(IdxBenchError, RuntimeError):
    """
    Exception raised when the accelerated backend cannot be initialized.

    Attributes:
        message (str): Explanation of the error
        backend (Optional[str]): The backend that failed (e.g. "cuda")
    """

    def __init__(
        self,
        message: str = "Accelerated backend failed to initialize.",
        backend: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.backend = backend


class StageError(IdxBenchError):
    """
    Exception raised by the run orchestrator when a stage fails.

    The original exception is available as ``cause`` and ``__cause__``.

    Attributes:
        stage (str): Name of the stage that failed
        cause (Optional[BaseException]): Underlying error
    """

    def __init__(self, stage: str, cause: Optional[BaseException] = None) -> None:
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "unknown error"
        super().__init__(f"Stage '{stage}' failed: {detail}")
        self.stage = stage
        self.cause = cause
