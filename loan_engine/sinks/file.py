"""File sink writing rendered PDFs to a directory."""

import logging
from pathlib import Path

from loan_engine.exceptions import SinkError
from loan_engine.models.document import RenderedDocument

logger = logging.getLogger(__name__)


class FileDocumentSink:
    """Write each document to ``output_dir/<filename>``.

    Parameters
    ----------
    output_dir : str | Path
        Directory for the PDF files; created if missing.
    """

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.written: list[Path] = []

    def write_document(self, document: RenderedDocument) -> Path:
        """Write one document and return its path."""
        path = self.output_dir / document.filename
        try:
            path.write_bytes(document.content)
        except OSError as e:
            raise SinkError(f"Failed to write {path}: {e}", path=str(path)) from e

        self.written.append(path)
        logger.info("Wrote %s (%d bytes)", path, document.size_bytes)
        return path

    def close(self) -> None:
        logger.info("File sink closed: %d documents in %s", len(self.written), self.output_dir)
