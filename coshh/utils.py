"""
Document loading for safety data sheets.
PDF text comes from pdfplumber; plain text files are read directly.
"""
import hashlib
import logging
from pathlib import Path
from typing import Any, Dict, Union

import pdfplumber

from coshh.errors import DocumentError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _existing_file(path: PathLike) -> Path:
    document = Path(path)
    if not document.is_file():
        raise DocumentError(f"Document not found: {document}")
    return document


def extract_pdf_content(pdf_path: PathLike, layout: bool = False) -> Dict[str, Any]:
    """
    Extract text and page information from a PDF.

    Args:
        pdf_path: Path to the PDF file
        layout: Keep the page layout when extracting text

    Returns:
        Dictionary containing text, page info and page count
    """
    document = _existing_file(pdf_path)

    try:
        with pdfplumber.open(document) as pdf:
            pages = []
            page_info = []

            for page_num, page in enumerate(pdf.pages):
                page_text = page.extract_text(layout=layout) or ''
                pages.append(page_text)
                page_info.append({
                    'page_number': page_num + 1,
                    'width': page.width,
                    'height': page.height,
                    'has_text': bool(page_text.strip()),
                })

            return {
                'text': '\n'.join(pages).strip(),
                'metadata': pdf.metadata or {},
                'page_info': page_info,
                'total_pages': len(pdf.pages),
            }
    except Exception as e:
        raise DocumentError(f"Could not read PDF {document}: {e}") from e


def extract_pdf_text(pdf_path: PathLike) -> str:
    """Text of every page of a PDF, pages separated by newlines"""
    content = extract_pdf_content(pdf_path)
    if not content['text']:
        logger.warning("No text layer found in %s, it may be a scanned image", pdf_path)
    return content['text']


def load_document_text(path: PathLike) -> str:
    """Load safety data sheet text from a PDF or a plain text file"""
    document = _existing_file(path)
    if document.suffix.lower() == '.pdf':
        return extract_pdf_text(document)

    try:
        return document.read_text(encoding='utf-8', errors='replace')
    except OSError as e:
        raise DocumentError(f"Could not read {document}: {e}") from e


def document_hash(path: PathLike) -> str:
    """Content hash identifying a document regardless of its file name"""
    return hashlib.md5(_existing_file(path).read_bytes()).hexdigest()


def get_document_info(path: PathLike) -> Dict[str, Any]:
    """Size and page count of a document without extracting its text"""
    document = _existing_file(path)
    info = {
        'file_path': str(document),
        'file_size_mb': round(document.stat().st_size / (1024 * 1024), 2),
        'total_pages': 1,
    }

    if document.suffix.lower() == '.pdf':
        try:
            with pdfplumber.open(document) as pdf:
                info['total_pages'] = len(pdf.pages)
                info['metadata'] = pdf.metadata or {}
        except Exception as e:
            raise DocumentError(f"Could not read PDF {document}: {e}") from e

    return info
