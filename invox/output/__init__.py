"""Output writers for extraction results."""

from .results_exporter import ResultsExporter, file_record, json_dumps, ndjson_dumps

__all__ = ["ResultsExporter", "file_record", "json_dumps", "ndjson_dumps"]
