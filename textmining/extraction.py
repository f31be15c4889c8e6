"""Docling converter setup and per-page PDF text extraction."""

from __future__ import annotations

import importlib.util
import logging
import shutil
import time
import traceback
from pathlib import Path
from typing import Any

from .models import DocRecord
from .sources import document_name
from .utils import save_page_text

log = logging.getLogger(__name__)


def create_converter(
    *,
    num_threads: int = 4,
    ocr_batch_size: int = 4,
    enable_ocr: bool = True,
) -> tuple[Any, str]:
    """Build a Docling ``DocumentConverter`` for PDF input.

    Args:
        num_threads: Thread count used by Docling accelerator options.
        ocr_batch_size: Batch size for OCR processing.
        enable_ocr: Whether OCR is enabled. UN reports carry a text layer,
            so OCR only matters for scanned annexes.

    Returns:
        (converter, ocr_engine) where ``ocr_engine`` names the OCR profile.
    """
    t0 = time.perf_counter()
    log.info("create_converter: importing docling modules ...")

    from docling.datamodel.accelerator_options import AcceleratorOptions
    from docling.datamodel.base_models import InputFormat
    from docling.datamodel.pipeline_options import (
        EasyOcrOptions,
        PdfPipelineOptions,
        TesseractOcrOptions,
    )
    from docling.document_converter import DocumentConverter, PdfFormatOption

    log.info("create_converter: imports done in %.2fs", time.perf_counter() - t0)

    accelerator_options = AcceleratorOptions(num_threads=max(1, num_threads))
    ocr_engine = "disabled"

    has_easyocr = importlib.util.find_spec("easyocr") is not None
    has_tesseract = shutil.which("tesseract") is not None

    if enable_ocr and (has_easyocr or has_tesseract):
        if has_easyocr:
            ocr_options = EasyOcrOptions()
            ocr_engine = "easyocr"
        else:
            ocr_options = TesseractOcrOptions()
            ocr_engine = "tesseract"
        pipeline_options = PdfPipelineOptions(
            do_ocr=True,
            ocr_options=ocr_options,
            accelerator_options=accelerator_options,
            ocr_batch_size=max(1, ocr_batch_size),
        )
    else:
        if enable_ocr:
            log.warning("create_converter: no OCR engine found; OCR disabled")
            ocr_engine = "disabled-no-engine"
        else:
            log.info("create_converter: OCR disabled")
        pipeline_options = PdfPipelineOptions(
            do_ocr=False,
            accelerator_options=accelerator_options,
        )

    converter = DocumentConverter(
        format_options={
            InputFormat.PDF: PdfFormatOption(pipeline_options=pipeline_options),
        }
    )
    log.info(
        "Docling converter initialized (%s) in %.2fs",
        ocr_engine,
        time.perf_counter() - t0,
    )
    return converter, ocr_engine


def document_pages(doc: Any) -> list[str]:
    """Export a DoclingDocument as one text string per page.

    Documents without page provenance are returned as a single page.
    """
    page_numbers = sorted(getattr(doc, "pages", None) or {})
    if not page_numbers:
        return [doc.export_to_markdown()]
    return [doc.export_to_markdown(page_no=page_no) for page_no in page_numbers]


def extract_single_pdf(converter: Any, pdf_path: Path) -> DocRecord:
    """Extract the per-page text of one PDF.

    Never raises; extraction errors are captured inside the returned record.
    """
    log.info("extract_single_pdf: START - %s", pdf_path.name)

    record = DocRecord(filename=pdf_path.name, filepath=str(pdf_path))
    t0 = time.perf_counter()

    try:
        result = converter.convert(source=str(pdf_path))
        doc = result.document
        record.pages = document_pages(doc)
        record.num_pages = len(record.pages)
        record.title = doc.name if getattr(doc, "name", None) else pdf_path.stem
        record.status = "success"
        log.info(
            "extract_single_pdf: SUCCESS - %s pages, %s chars",
            record.num_pages,
            len(record.text),
        )
    except Exception:
        record.status = "error"
        record.error = traceback.format_exc()
        log.error("extract_single_pdf: ERROR - %s\n%s", pdf_path.name, record.error)
    finally:
        record.extraction_time_s = round(time.perf_counter() - t0, 2)
        log.debug(
            "extract_single_pdf: DONE - %s in %ss",
            pdf_path.name,
            record.extraction_time_s,
        )

    return record


def extract_pdfs(
    converter: Any,
    pdf_files: list[Path],
    text_output_dir: Path | None = None,
    root: Path | None = None,
) -> list[DocRecord]:
    """Batch-extract PDFs, caching page text of successes under *text_output_dir*.

    Records are named by their path relative to *root* when given.
    """
    records: list[DocRecord] = []

    for pdf_path in pdf_files:
        record = extract_single_pdf(converter, pdf_path)
        record.filename = document_name(pdf_path, root)
        records.append(record)
        if record.status == "success" and text_output_dir is not None:
            save_page_text(text_output_dir, record)

    success = [r for r in records if r.status == "success"]
    failed = [r for r in records if r.status == "error"]
    log.info("Extraction: %s succeeded, %s failed", len(success), len(failed))
    return records
