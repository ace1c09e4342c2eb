"""JSON file sink for exporting ledgers and document manifests."""

import json
from pathlib import Path
from typing import Any

from loan_engine.exceptions import SinkError
from loan_engine.models.document import RenderedDocument
from loan_engine.sinks.serialization import document_metadata, to_dict


class JsonFileSink:
    """Output records to JSON files."""

    MANIFEST = "documents"

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write JSON files.
        pretty : bool
            Pretty-print JSON output.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}
        self._manifest: list[dict] = []

    def write_batch(self, entity_type: str, records: list[Any]) -> Path:
        """Write a batch of records to ``<entity_type>.json``."""
        file_path = self.output_dir / f"{entity_type}.json"
        self._dump(file_path, [to_dict(record) for record in records])
        self._counts[entity_type] = len(records)
        return file_path

    def write_document(self, document: RenderedDocument) -> None:
        """Record a document in ``documents.json``; the PDF itself is not stored."""
        self._manifest.append(document_metadata(document))
        self._dump(self.output_dir / f"{self.MANIFEST}.json", self._manifest)
        self._counts[self.MANIFEST] = len(self._manifest)

    def close(self) -> None:
        """Print summary."""
        print(f"JSON files written to: {self.output_dir}")
        for entity_type, count in self._counts.items():
            print(f"  {entity_type}: {count} records")

    def _dump(self, file_path: Path, data: list[dict]) -> None:
        try:
            with open(file_path, "w", encoding="utf-8") as f:
                if self.pretty:
                    json.dump(data, f, indent=2, ensure_ascii=False, default=str)
                else:
                    json.dump(data, f, ensure_ascii=False, default=str)
        except OSError as e:
            raise SinkError(f"Failed to write {file_path}: {e}", path=str(file_path)) from e
