"""Export of extraction results.

Writes processed files and their parsed payloads to disk:
- results.ndjson: one line per file
- results.json: the same records as an indented array
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

import orjson

from ..types.files import FileTask

logger = logging.getLogger(__name__)

FORMATS = ("ndjson", "json", "both")


def json_dumps(obj: Any) -> bytes:
    """Serialize object to JSON bytes using orjson."""
    return orjson.dumps(
        obj,
        option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS,
        default=_json_default,
    )


def ndjson_dumps(obj: Any) -> bytes:
    """Serialize object to NDJSON bytes (no indent)."""
    return orjson.dumps(obj, default=_json_default)


def _json_default(obj: Any) -> Any:
    """Default serializer for non-standard types."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    raise TypeError(f"Cannot serialize {type(obj)}")


def file_record(file: FileTask) -> dict[str, Any]:
    """Export record for one file."""
    return {
        "id": file.id,
        "fileName": file.file_name,
        "status": file.status.value,
        "processedAt": file.processed_at,
        "data": file.parsed_details,
    }


class ResultsExporter:
    """Writes extraction results to an output directory."""

    def __init__(self, output_dir: Path):
        """Initialize the exporter.

        Args:
            output_dir: Base output directory. A timestamped subdirectory is
                created inside it.
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._output_dir = Path(output_dir) / f"invox_results_{timestamp}"

    @property
    def output_dir(self) -> Path:
        """Get the output directory path."""
        return self._output_dir

    def write(self, files: Iterable[FileTask], output_format: str = "ndjson") -> list[Path]:
        """Write result files.

        Args:
            files: Files to export.
            output_format: ndjson, json, or both.

        Returns:
            Paths of the files written.
        """
        if output_format not in FORMATS:
            raise ValueError(f"Unknown format: {output_format}. Available: {list(FORMATS)}")

        records = [file_record(file) for file in files]
        self._output_dir.mkdir(parents=True, exist_ok=True)
        written = []

        if output_format in ("ndjson", "both"):
            path = self._output_dir / "results.ndjson"
            with open(path, "wb") as f:
                for record in records:
                    f.write(ndjson_dumps(record))
                    f.write(b"\n")
            written.append(path)

        if output_format in ("json", "both"):
            path = self._output_dir / "results.json"
            path.write_bytes(json_dumps(records))
            written.append(path)

        logger.info(f"Exported {len(records)} results to {self._output_dir}")
        return written
