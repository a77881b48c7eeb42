"""
Exceptions raised by the document intelligence pipeline
"""


class DocumentIntelligenceError(Exception):
    """Base class for all errors raised by this package"""


class UnsupportedDocumentType(DocumentIntelligenceError, ValueError):
    """Raised when a document type string is not one of the known kinds"""


class UnreadableImageError(DocumentIntelligenceError, ValueError):
    """The image could not be decoded into a non-empty pixel buffer"""


class OCRUnavailableError(DocumentIntelligenceError, RuntimeError):
    """No OCR backend could be initialised"""


class DocumentProcessingError(DocumentIntelligenceError, RuntimeError):
    """OCR or preprocessing failed; the caller decides whether to retry"""


class ScanCancelled(DocumentIntelligenceError):
    """A blob scan was cancelled through its cancel event"""
