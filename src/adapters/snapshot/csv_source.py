"""CSV Snapshot Source.

Reads a flat CSV export, one record per row. Patients and observations may
share a file; a row with an observation date or reason is an observation.
Empty cells become missing values.
"""

import logging
from typing import Iterator, Union

import pandas as pd

from src.adapters.snapshot.base import FileSnapshotSource
from src.domain.ports import Result, UnsupportedSourceError
from src.domain.records import ObservationRecord, PatientRecord

logger = logging.getLogger(__name__)


class CSVSnapshotSource(FileSnapshotSource):
    """CSV snapshot adapter with per-row triage.

    Parameters:
        delimiter: Field delimiter (default: comma)
    """

    adapter_name = "csv_snapshot"
    extensions = (".csv", ".tsv")

    def __init__(self, delimiter: str = ","):
        self.delimiter = delimiter

    def read(self, source: str) -> Iterator[Result[Union[PatientRecord, ObservationRecord]]]:
        """Parse a CSV export and yield one Result per row.

        Raises:
            SourceNotFoundError: If the file does not exist
            UnsupportedSourceError: If the file cannot be parsed as CSV
        """
        source_path = self._require_file(source)
        delimiter = "\t" if source_path.suffix.lower() == ".tsv" else self.delimiter
        try:
            frame = pd.read_csv(
                source_path,
                delimiter=delimiter,
                dtype=str,
                encoding='utf-8',
                skipinitialspace=True,
            )
        except pd.errors.EmptyDataError:
            logger.warning(f"No records found in {source}")
            return
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise UnsupportedSourceError(
                f"Invalid CSV format in {source}: {str(e)}",
                source=source,
                adapter=self.adapter_name
            ) from e

        frame.columns = [str(column).strip() for column in frame.columns]
        # NaN cells become None so model validators see missing values
        frame = frame.astype(object).where(frame.notna(), None)
        yield from self._validate_records(frame.to_dict(orient="records"), source)
