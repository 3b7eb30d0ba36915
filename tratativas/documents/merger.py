from pathlib import Path

import pymupdf

from tratativas.documents.exceptions import MergeError
from tratativas.documents.models import StagedFile
from tratativas.logging.logger import Log


class PdfMerger:
    """Concatenates staged single-page PDFs using PyMuPDF."""

    def __init__(self, log: Log) -> None:
        self._log = log

    def merge(self, files: list[Path], output: Path) -> StagedFile:
        """Append all pages of ``files`` in order and save to ``output``.

        Inputs are opened read-only and never modified.

        Raises:
            MergeError: if ``files`` is not exactly two paths, an input is not a
                valid PDF, or the output cannot be written.
        """
        if len(files) != 2:
            raise MergeError(f"Expected 2 files to merge, got {len(files)}", files)
        self._log.info(f"Merging {len(files)} PDFs into {output}")
        try:
            with pymupdf.open() as merged:  # type: ignore[no-untyped-call]
                for path in files:
                    with pymupdf.open(path, filetype="pdf") as source:  # type: ignore[no-untyped-call]
                        if source.page_count == 0:
                            raise MergeError(f"{path} has no pages", files)
                        merged.insert_pdf(source)
                merged.save(output)
                page_count = merged.page_count
            size = output.stat().st_size
        except MergeError:
            raise
        except Exception as exc:
            raise MergeError(
                f"PDF merge failed for {[str(f) for f in files]}: {exc}", files
            ) from exc
        self._log.info(f"Merged {page_count} pages into {output}", pages=page_count)
        return StagedFile(path=output, size_bytes=size)
