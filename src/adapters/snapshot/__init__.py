"""Snapshot sources for Ward-Census.

This module contains the adapters that implement the SnapshotSourcePort
interface for reading exported record-store snapshots (JSON, CSV).
"""

from pathlib import Path

from src.adapters.snapshot.csv_source import CSVSnapshotSource
from src.adapters.snapshot.json_source import JSONSnapshotSource
from src.domain.ports import SnapshotSourcePort, UnsupportedSourceError

__all__ = ["CSVSnapshotSource", "JSONSnapshotSource", "get_adapter"]


def get_adapter(source: str, **kwargs) -> SnapshotSourcePort:
    """Factory function to get the snapshot adapter for a source.

    Parameters:
        source: Source identifier (file path)
        **kwargs: Additional arguments passed to the adapter constructor
            - For CSV: delimiter

    Returns:
        SnapshotSourcePort: Appropriate adapter instance

    Raises:
        UnsupportedSourceError: If no adapter can handle the source

    Example Usage:
        ```python
        snapshot = get_adapter("ward_export.json").load("ward_export.json")
        ```
    """
    extension = Path(source).suffix.lower()
    adapters = [
        ((".csv", ".tsv"), CSVSnapshotSource),
        ((".json",), JSONSnapshotSource),
    ]
    for extensions, adapter_class in adapters:
        if extension in extensions:
            return adapter_class(**kwargs)

    raise UnsupportedSourceError(
        f"No adapter found for source: {source}. Supported formats: CSV, JSON",
        source=source
    )
