"""
File Upload Utility - Extract text from job description files and
validate resume PDFs.

Supported JD formats:
- PDF (.pdf) using PyPDF2
- Word (.docx) using python-docx
- Plain Text (.txt)

Max file size: 5MB. Resumes must be PDFs of at least 1KB.
"""

import io
from typing import Tuple
from fastapi import UploadFile, HTTPException
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError
from docx import Document

from placement_portal.core.errors import ValidationError


MAX_FILE_SIZE_MB = 5
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
MIN_RESUME_SIZE_BYTES = 1024
ALLOWED_EXTENSIONS = {'.pdf', '.docx', '.txt'}
PDF_CONTENT_TYPE = 'application/pdf'


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


async def extract_text_from_file(file: UploadFile) -> Tuple[str, str]:
    """
    Extract text from an uploaded job description.

    Returns:
        Tuple of (extracted_text, filename)

    Raises:
        HTTPException on validation/extraction errors
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: PDF, DOCX, TXT"
        )

    content = await file.read()

    if len(content) > MAX_FILE_SIZE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {MAX_FILE_SIZE_MB}MB"
        )

    if ext == '.pdf':
        text = extract_from_pdf(content)
    elif ext == '.docx':
        text = extract_from_docx(content)
    else:  # .txt
        text = extract_from_txt(content)

    if not text.strip():
        raise HTTPException(
            status_code=400,
            detail="Could not extract text from file. File may be empty or corrupted."
        )

    return text, file.filename


def extract_from_pdf(content: bytes) -> str:
    """Extract text from PDF bytes."""
    try:
        reader = PdfReader(io.BytesIO(content))
        text_parts = []
        for page in reader.pages:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
        return '\n'.join(text_parts)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error reading PDF: {str(e)}")


def extract_from_docx(content: bytes) -> str:
    """Extract text from DOCX bytes."""
    try:
        doc = Document(io.BytesIO(content))
        text_parts = []

        for para in doc.paragraphs:
            if para.text.strip():
                text_parts.append(para.text)

        # Requirements are often laid out as tables
        for table in doc.tables:
            for row in table.rows:
                row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if row_text:
                    text_parts.append(' | '.join(row_text))

        return '\n'.join(text_parts)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error reading DOCX: {str(e)}")


def extract_from_txt(content: bytes) -> str:
    """Extract text from TXT bytes."""
    for encoding in ['utf-8', 'latin-1', 'cp1252']:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise HTTPException(status_code=400, detail="Could not decode text file")


def validate_resume_pdf(filename: str, content_type: str, content: bytes) -> int:
    """
    Check an uploaded resume: PDF only, 1KB to 5MB, and readable by PyPDF2.

    Returns:
        Number of pages.

    Raises:
        ValidationError with a user-facing message.
    """
    if content_type != PDF_CONTENT_TYPE or get_file_extension(filename or '') != '.pdf':
        raise ValidationError("Please upload a PDF file only.")
    if len(content) > MAX_FILE_SIZE_BYTES:
        raise ValidationError(f"File size must be less than {MAX_FILE_SIZE_MB}MB.")
    if len(content) < MIN_RESUME_SIZE_BYTES:
        raise ValidationError("File seems too small. Please upload a valid PDF resume.")

    try:
        reader = PdfReader(io.BytesIO(content))
        pages = len(reader.pages)
    except (PdfReadError, ValueError, OSError) as e:
        raise ValidationError(f"Could not read PDF: {e}")
    if pages == 0:
        raise ValidationError("PDF has no pages.")
    return pages


def get_supported_formats() -> dict:
    """Get info about supported file formats."""
    return {
        "supported_formats": [
            {"extension": ".pdf", "name": "PDF"},
            {"extension": ".docx", "name": "Word Document"},
            {"extension": ".txt", "name": "Plain Text"}
        ],
        "max_size_mb": MAX_FILE_SIZE_MB
    }
