"""
Document scanning pipeline
Orchestrates both engines: preprocessing → OCR → field extraction,
and pixel decoding → blob scan → deduplication → pill count
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from .blob_scanner import BlobScanConfig, BlobScanner
from .config import PREPROCESSING
from .deduplicator import deduplicate
from .errors import DocumentProcessingError
from .field_extractor import FieldExtractor
from .models import DocumentType, FieldRecord, PillCountResult, ScanResult
from .ocr_engine import DocumentOCR
from .pill_counter import PillCountEstimator
from .pixel_buffer import load_pixel_buffer
from .preprocessing import ImagePreprocessor

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class DocumentScanner:
    """
    Image-to-structured-data pipeline for labels, bills, prescriptions
    and pill photos
    """

    def __init__(
        self,
        ocr=None,
        preprocess: Optional[bool] = None,
        blob_config: Optional[BlobScanConfig] = None,
        estimator: Optional[PillCountEstimator] = None,
        ocr_engine: Optional[str] = None,
    ):
        logger.info("🚀 Initializing Document Scanner...")

        # OCR backends load lazily, so constructing the default is cheap
        self.ocr = ocr if ocr is not None else DocumentOCR()
        self.ocr_engine = ocr_engine
        self.preprocess = PREPROCESSING['enabled'] if preprocess is None else preprocess
        self.preprocessor = ImagePreprocessor()
        self.extractor = FieldExtractor()
        self.blob_scanner = BlobScanner(blob_config)
        self.estimator = estimator or PillCountEstimator()

        logger.info("✅ Document Scanner initialized")

    def process_document(
        self,
        image,
        document_type,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ScanResult:
        """
        Recognize and extract a document photo

        Args:
            image: Raw bytes, file path or numpy array; returned unchanged
            document_type: 'pill', 'bill', 'prescription' or 'verification'
            progress_callback: Optional callable receiving 0.0-1.0

        Returns:
            ScanResult

        Raises:
            UnsupportedDocumentType: for an unknown document type
            DocumentProcessingError: if preprocessing or OCR fails
        """
        document_type = DocumentType.parse(document_type)

        def report(fraction):
            if progress_callback is not None:
                progress_callback(fraction)

        if document_type is DocumentType.VERIFICATION:
            logger.info("📸 Verification photo, skipping extraction")
            report(1.0)
            return ScanResult(original_text='', processed_data=None,
                              image=image, document_type=document_type)

        start_time = datetime.now()
        logger.info(f"📄 Processing {document_type.value} image")
        report(0.0)

        try:
            ocr_input = self.preprocessor.preprocess(image) if self.preprocess else image
            ocr_result = self.ocr.extract_text(ocr_input, engine=self.ocr_engine)
        except Exception as e:
            logger.error(f"❌ Document processing failed: {e}", exc_info=True)
            raise DocumentProcessingError(f"Failed to process image: {e}") from e

        text = (ocr_result.get('text') or '').strip()
        report(0.8)

        record = self.extractor.extract(text, document_type)
        report(1.0)

        processing_time = (datetime.now() - start_time).total_seconds()
        logger.info(f"✅ Processed {document_type.value} in {processing_time:.2f}s")

        return ScanResult(original_text=text, processed_data=record,
                          image=image, document_type=document_type)

    def extract_fields(self, text: str, document_type) -> Optional[FieldRecord]:
        """Extraction only, for callers that already hold recognized text"""
        return self.extractor.extract(text, document_type)

    def count_pills(self, image, cancel_event=None) -> PillCountResult:
        """
        Estimate how many pills are visible in an image

        Raises:
            UnreadableImageError: if the image cannot be decoded
            ScanCancelled: if cancel_event is set mid-scan
        """
        buffer = load_pixel_buffer(image)

        candidates = self.blob_scanner.scan(buffer, cancel_event=cancel_event)
        detections = deduplicate(candidates, self.blob_scanner.config.min_pill_size)

        return self.estimator.estimate(len(detections))


# Standalone functions
def process_document_image(image, document_type, ocr=None, preprocess=None) -> ScanResult:
    """Quick function to process one document photo"""
    scanner = DocumentScanner(ocr=ocr, preprocess=preprocess)
    return scanner.process_document(image, document_type)


def count_pills_in_image(image, perturbation=None, rng=None) -> int:
    """Quick function returning just the reported pill count"""
    estimator = PillCountEstimator(perturbation=perturbation, rng=rng)
    scanner = DocumentScanner(estimator=estimator)
    return scanner.count_pills(image).reported_count
