"""Shared triage for file-based snapshot sources.

Security Impact:
    - Each raw record is validated on its own; a malformed record becomes a
      failure Result and is logged as a rejection, it never aborts the load
    - Rejection logs carry a truncated preview, never the full record

Architecture:
    - Implements SnapshotSourcePort (Hexagonal Architecture)
    - Concrete sources only parse their format into raw dictionaries
"""

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Type, Union

from pydantic import ValidationError as PydanticValidationError

from src.domain.ports import Result, SnapshotSourcePort, SourceNotFoundError
from src.domain.records import ObservationRecord, PatientRecord

logger = logging.getLogger(__name__)

# Keys that only observation entries carry
OBSERVATION_MARKERS = (
    "date_of_observation",
    "dateOfObservation",
    "reason_for_observation",
    "reasonForObservation",
)

RecordModel = Type[Union[PatientRecord, ObservationRecord]]


def is_observation(raw_record: dict) -> bool:
    return any(raw_record.get(key) not in (None, "") for key in OBSERVATION_MARKERS)


class FileSnapshotSource(SnapshotSourcePort):
    """Base class for snapshot sources backed by a single exported file."""

    adapter_name = "file_snapshot"
    extensions: tuple = ()

    def can_read(self, source: str) -> bool:
        """Check if this adapter can handle the given source.

        Parameters:
            source: Source identifier (file path)

        Returns:
            bool: True if the file extension matches this adapter
        """
        if not source:
            return False
        return Path(source).suffix.lower() in self.extensions

    def fingerprint(self, source: str) -> Optional[str]:
        """SHA-256 of the file content, truncated to 16 hex characters."""
        source_path = Path(source)
        if not source_path.is_file():
            return None
        return hashlib.sha256(source_path.read_bytes()).hexdigest()[:16]

    def _require_file(self, source: str) -> Path:
        source_path = Path(source)
        if not source_path.is_file():
            raise SourceNotFoundError(
                f"{self.adapter_name} source not found: {source}",
                source=source
            )
        return source_path

    def _validate_records(
        self,
        raw_records: Iterable[Any],
        source: str,
        model: Optional[RecordModel] = None,
    ) -> Iterator[Result[Union[PatientRecord, ObservationRecord]]]:
        """Validate raw dictionaries one by one.

        Parameters:
            raw_records: Parsed raw records
            source: Source identifier (for logging)
            model: Record model to validate against; detected per record when None

        Yields:
            Result per raw record
        """
        accepted = 0
        rejected = 0
        for record_index, raw_record in enumerate(raw_records):
            if not isinstance(raw_record, dict):
                rejected += 1
                error = f"Record {record_index} is not an object"
                self._log_rejection(source, record_index, error, {"type": type(raw_record).__name__})
                yield Result.failure_result(
                    error,
                    error_type="TransformationError",
                    error_details={"source": source, "record_index": record_index},
                )
                continue

            record_model = model or (ObservationRecord if is_observation(raw_record) else PatientRecord)
            try:
                record = record_model.model_validate(raw_record)
            except PydanticValidationError as e:
                rejected += 1
                self._log_rejection(source, record_index, str(e), raw_record)
                yield Result.failure_result(
                    f"Record {record_index} failed validation: {e.error_count()} error(s)",
                    error_type="ValidationError",
                    error_details={
                        "source": source,
                        "record_index": record_index,
                        "validation_errors": str(e),
                        "error_count": e.error_count(),
                    },
                )
                continue

            accepted += 1
            yield Result.success_result(record)

        logger.info(
            f"Read {accepted} record(s) from {source}"
            + (f", rejected {rejected}" if rejected else "")
        )

    def _log_rejection(self, source: str, record_index: int, error: str, raw_record: dict) -> None:
        logger.warning(
            f"Record {record_index} from {source} rejected",
            extra={
                'rejection_type': 'validation_failure',
                'source': source,
                'record_index': record_index,
                'error_message': error,
                'raw_record_preview': self._truncate_for_logging(raw_record),
            }
        )

    def _truncate_for_logging(self, data: dict, max_size: int = 500) -> dict:
        """Truncate a record so log lines stay bounded."""
        data_str = json.dumps(data, default=str)
        if len(data_str) <= max_size:
            return data
        return {'_truncated': True, '_preview': data_str[:max_size] + '...'}
