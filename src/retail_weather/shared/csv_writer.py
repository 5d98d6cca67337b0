"""
CSV sink for enriched sales records.

Example:
    >>> with EnrichedRecordWriter("sales_weather.csv") as writer:
    ...     writer.write_records(result.records)
"""

import csv
import threading
from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from .models import EnrichedRecord

ENRICHED_COLUMNS: list[str] = list(EnrichedRecord.model_fields)


def records_to_dataframe(records: Iterable[EnrichedRecord]) -> pd.DataFrame:
    """Flat DataFrame of enriched records with the standard column order."""
    return pd.DataFrame([r.to_row() for r in records], columns=ENRICHED_COLUMNS)


class EnrichedRecordWriter:
    """
    Buffered CSV writer for ``EnrichedRecord`` rows.

    Absent weather values are written as empty fields. Thread-safe, so
    workers may hand over chunks as they finish.

    Attributes:
        filepath: Path to the output CSV file
        rows_written: Number of records written so far
    """

    def __init__(
        self,
        filepath: str | Path,
        append: bool = False,
        buffer_size: int = 8192,
        encoding: str = "utf-8",
    ):
        self.filepath = Path(filepath)
        self.filepath.parent.mkdir(parents=True, exist_ok=True)

        write_header = not append or not self.filepath.exists()
        self._file = open(
            self.filepath,
            "a" if append else "w",
            encoding=encoding,
            buffering=buffer_size,
            newline="",
        )
        self._writer = csv.DictWriter(
            self._file,
            fieldnames=ENRICHED_COLUMNS,
            extrasaction="ignore",
            lineterminator="\n",
        )
        if write_header:
            self._writer.writeheader()

        self._lock = threading.Lock()
        self._closed = False
        self.rows_written = 0

    def write_records(self, records: Iterable[EnrichedRecord]) -> int:
        """
        Write enriched records.

        Returns:
            Number of records written

        Raises:
            ValueError: If the writer is closed
            RuntimeError: If an I/O error occurs during writing
        """
        if self._closed:
            raise ValueError("Cannot write to closed EnrichedRecordWriter")

        rows = [record.to_row() for record in records]
        if not rows:
            return 0

        try:
            with self._lock:
                self._writer.writerows(rows)
                self._file.flush()
                self.rows_written += len(rows)
            return len(rows)
        except OSError as e:
            raise RuntimeError(f"Error writing records to {self.filepath}: {e}") from e

    def close(self) -> None:
        with self._lock:
            if not self._closed:
                self._file.close()
                self._closed = True

    def __enter__(self) -> "EnrichedRecordWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
