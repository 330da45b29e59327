"""Domain Ports - Abstract Contracts for Record Snapshots.

This module defines the Port interfaces that snapshot adapters must implement,
the Result type used to report per-record success or failure, and the domain
exception hierarchy.

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Adapters (JSON export, CSV export, ...) implement ``SnapshotSourcePort``
    - The analytics engine only ever sees an in-memory ``Snapshot``
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, Iterator, List, Optional, TypeVar, Union

from src.domain.records import ObservationRecord, PatientRecord

# Type variable for Result generic
T = TypeVar('T')


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    Snapshot adapters wrap every parsed record in a Result so that one
    malformed record degrades only its own contribution instead of aborting
    the whole load.

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error information (only present if success=False)
        error_type: Type of error (ValidationError, ...)
        error_details: Additional error context (source, record_index, etc.)

    Example:
        ```python
        result = Result.success_result(patient)
        if result.success:
            patients.append(result.value)
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result.

        Parameters:
            value: The successful result value

        Returns:
            Result: Success result with the value
        """
        return cls(
            success=True,
            value=value,
            error=None,
            error_type=None,
            error_details=None
        )

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message or exception
            error_type: Type of error (e.g., "ValidationError")
            error_details: Additional context (source, record_index, etc.)

        Returns:
            Result: Failure result with error information
        """
        error_message = str(error) if isinstance(error, Exception) else error
        error_type_name = error_type or (type(error).__name__ if isinstance(error, Exception) else "UnknownError")

        return cls(
            success=False,
            value=None,
            error=error_message,
            error_type=error_type_name,
            error_details=error_details or {}
        )

    def is_success(self) -> bool:
        """Check if result is successful."""
        return self.success

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class WardAnalyticsError(Exception):
    """Base exception for all ward analytics errors."""
    pass


class InvalidArgumentError(WardAnalyticsError, ValueError):
    """Raised for arguments that indicate a programming error.

    Examples are an unknown granularity or dimension, a non-positive
    truncation length or a malformed ``HH:MM`` shift bound. Data-quality
    problems inside records never raise this; they are reported through
    ``DataQualityReport`` instead.
    """
    pass


class SnapshotError(WardAnalyticsError):
    """Base exception for snapshot loading errors."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class SourceNotFoundError(SnapshotError):
    """Raised when the snapshot file cannot be found or accessed."""
    pass


class UnsupportedSourceError(SnapshotError):
    """Raised when the snapshot format is not supported by any adapter.

    Attributes:
        source: The source identifier that is unsupported
        adapter: The adapter that cannot handle the source
    """

    def __init__(self, message: str, source: Optional[str] = None, adapter: Optional[str] = None):
        super().__init__(message, source=source)
        self.adapter = adapter


# ============================================================================
# Snapshot
# ============================================================================

@dataclass
class Snapshot:
    """In-memory snapshot of the record store.

    Attributes:
        patients: Validated hospitalization episodes
        observations: Validated observation entries
        rejected: Failure results for records that did not validate
        version: Opaque version tag used for report memoisation
    """
    patients: List[PatientRecord] = field(default_factory=list)
    observations: List[ObservationRecord] = field(default_factory=list)
    rejected: List[Result] = field(default_factory=list)
    version: Optional[str] = None

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)

    @property
    def records(self) -> List[Union[PatientRecord, ObservationRecord]]:
        return [*self.patients, *self.observations]


class SnapshotSourcePort(ABC):
    """Abstract contract for record snapshot adapters.

    The engine imposes no streaming or pagination contract: an adapter reads
    whatever the store exported and returns it as one ``Snapshot``.
    """

    @abstractmethod
    def read(self, source: str) -> Iterator[Result[Union[PatientRecord, ObservationRecord]]]:
        """Parse a source and yield one Result per raw record.

        Parameters:
            source: Source identifier (file path)

        Yields:
            Result wrapping a validated record, or a failure describing why the
            raw record was rejected

        Raises:
            SourceNotFoundError: If the source does not exist
            UnsupportedSourceError: If the source cannot be parsed at all
        """
        pass

    @abstractmethod
    def can_read(self, source: str) -> bool:
        """Check if this adapter can handle the given source."""
        pass

    def fingerprint(self, source: str) -> Optional[str]:
        """Version tag of the source content; None disables report memoisation."""
        return None

    def load(self, source: str) -> Snapshot:
        """Read a source fully into a ``Snapshot``."""
        snapshot = Snapshot(version=self.fingerprint(source))
        for result in self.read(source):
            if result.is_failure():
                snapshot.rejected.append(result)
            elif isinstance(result.value, ObservationRecord):
                snapshot.observations.append(result.value)
            else:
                snapshot.patients.append(result.value)
        return snapshot
