"""JSON Snapshot Source.

Reads a JSON export of the record store. Supported structures:

- Array of records: ``[{...}, ...]`` (patients and observations mixed;
  observations are recognized by their observation date or reason)
- Object with ``patients`` and/or ``observations`` arrays
- Object with a ``records`` or ``data`` array

Field names may be camelCase (as exported by the ward app) or snake_case.
"""

import json
import logging
from typing import Any, Iterator, List, Tuple, Union

from src.adapters.snapshot.base import FileSnapshotSource
from src.domain.ports import Result, UnsupportedSourceError
from src.domain.records import ObservationRecord, PatientRecord

logger = logging.getLogger(__name__)


class JSONSnapshotSource(FileSnapshotSource):
    """JSON snapshot adapter with per-record triage."""

    adapter_name = "json_snapshot"
    extensions = (".json",)

    def read(self, source: str) -> Iterator[Result[Union[PatientRecord, ObservationRecord]]]:
        """Parse a JSON export and yield one Result per raw record.

        Raises:
            SourceNotFoundError: If the file does not exist
            UnsupportedSourceError: If the file is not valid JSON or has an
                unsupported structure
        """
        source_path = self._require_file(source)
        try:
            with open(source_path, 'r', encoding='utf-8') as f:
                raw_data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise UnsupportedSourceError(
                f"Invalid JSON format in {source}: {str(e)}",
                source=source,
                adapter=self.adapter_name
            ) from e

        sections = self._extract_sections(raw_data, source)
        if not any(records for _, records in sections):
            logger.warning(f"No records found in {source}")
        for model, records in sections:
            yield from self._validate_records(records, source, model)

    def _extract_sections(self, raw_data: Any, source: str) -> List[Tuple[Any, list]]:
        """Split parsed JSON into (model, raw records) sections.

        A model of None means the record kind is detected per record.
        """
        if isinstance(raw_data, list):
            return [(None, raw_data)]
        if isinstance(raw_data, dict):
            if 'patients' in raw_data or 'observations' in raw_data:
                return [
                    (PatientRecord, self._as_list(raw_data.get('patients'), 'patients', source)),
                    (ObservationRecord, self._as_list(raw_data.get('observations'), 'observations', source)),
                ]
            for key in ('records', 'data'):
                if key in raw_data:
                    return [(None, self._as_list(raw_data[key], key, source))]
            return [(None, [raw_data])]
        raise UnsupportedSourceError(
            f"Unsupported JSON structure: expected array or object, got {type(raw_data).__name__}",
            source=source,
            adapter=self.adapter_name
        )

    def _as_list(self, value: Any, key: str, source: str) -> list:
        if value is None:
            return []
        if not isinstance(value, list):
            raise UnsupportedSourceError(
                f"'{key}' in {source} must be an array, got {type(value).__name__}",
                source=source,
                adapter=self.adapter_name
            )
        return value
