"""
Document Image Intelligence
Turns photos of pill labels, medical bills and prescriptions into structured
records, and estimates pill counts from photos of loose pills
"""

from .field_extractor import FieldExtractor, extract_fields
from .models import DocumentType, PillCountResult, ScanResult
from .pipeline import DocumentScanner, count_pills_in_image, process_document_image

__version__ = "1.0.0"
__all__ = [
    'DocumentScanner',
    'DocumentType',
    'FieldExtractor',
    'PillCountResult',
    'ScanResult',
    'count_pills_in_image',
    'extract_fields',
    'process_document_image',
]
