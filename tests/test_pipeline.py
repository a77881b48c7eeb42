from __future__ import annotations

import unittest

import cv2
import numpy as np

from document_intelligence.errors import (
    DocumentProcessingError,
    UnreadableImageError,
    UnsupportedDocumentType,
)
from document_intelligence.models import BillInfo, DocumentType, PillInfo, PrescriptionInfo
from document_intelligence.pill_counter import PillCountEstimator
from document_intelligence.pipeline import DocumentScanner, count_pills_in_image


class FakeOCR:
    """Stands in for EasyOCR/Tesseract; returns canned text."""

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.calls = []

    def extract_text(self, image, engine=None):
        self.calls.append(image)
        return {"text": self.text, "confidence": 0.9, "engine_used": "fake"}


class FailingOCR:
    def extract_text(self, image, engine=None):
        raise RuntimeError("engine crashed")


def _png(image: np.ndarray) -> bytes:
    ok, encoded = cv2.imencode(".png", image)
    assert ok
    return encoded.tobytes()


def _honest_scanner(ocr=None) -> DocumentScanner:
    return DocumentScanner(ocr=ocr or FakeOCR(), preprocess=False,
                           estimator=PillCountEstimator(perturbation=(0, 0)))


class TestProcessDocument(unittest.TestCase):
    def test_pill_label(self) -> None:
        ocr = FakeOCR("\n Aspirin\n100mg\nTake twice daily \n")
        image = b"captured-jpeg-bytes"
        result = _honest_scanner(ocr).process_document(image, "pill")

        self.assertIs(result.image, image)
        self.assertEqual(ocr.calls, [image])
        self.assertEqual(result.original_text, "Aspirin\n100mg\nTake twice daily")
        self.assertEqual(
            result.processed_data,
            PillInfo("Aspirin", "100mg", "Take twice daily", "Aspirin\n100mg\nTake twice daily"),
        )

    def test_bill_and_prescription(self) -> None:
        bill = _honest_scanner(FakeOCR("City General Hospital\nTotal Due: $250.00\n01/15/2024"))
        self.assertIsInstance(bill.process_document(b"x", DocumentType.BILL).processed_data, BillInfo)

        rx = _honest_scanner(FakeOCR("Dr. Lee\nAmoxicillin\n500mg"))
        record = rx.process_document(b"x", "prescription").processed_data
        self.assertIsInstance(record, PrescriptionInfo)
        self.assertEqual(record.medications[0].dosage, "500mg")

    def test_verification_bypasses_ocr(self) -> None:
        image = b"proof-of-dose-photo"
        result = _honest_scanner(FailingOCR()).process_document(image, "verification")

        self.assertIs(result.image, image)
        self.assertEqual(result.original_text, "")
        self.assertIsNone(result.processed_data)
        self.assertEqual(result.to_dict()["processed_data"], {})

    def test_empty_text_is_not_an_error(self) -> None:
        result = _honest_scanner(FakeOCR("   ")).process_document(b"x", "pill")
        self.assertEqual(result.processed_data, PillInfo())

    def test_ocr_failure_is_processing_error(self) -> None:
        with self.assertRaises(DocumentProcessingError) as ctx:
            _honest_scanner(FailingOCR()).process_document(b"x", "bill")
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)

    def test_unknown_type(self) -> None:
        with self.assertRaises(UnsupportedDocumentType):
            _honest_scanner().process_document(b"x", "receipt-of-doom")

    def test_progress_reporting(self) -> None:
        seen = []
        _honest_scanner(FakeOCR("Aspirin")).process_document(b"x", "pill", progress_callback=seen.append)
        self.assertEqual(seen, [0.0, 0.8, 1.0])

        seen = []
        _honest_scanner().process_document(b"x", "verification", progress_callback=seen.append)
        self.assertEqual(seen, [1.0])

    def test_preprocessing_feeds_binarized_array_to_ocr(self) -> None:
        ocr = FakeOCR("Aspirin")
        scanner = DocumentScanner(ocr=ocr, preprocess=True)
        scanner.process_document(_png(np.full((60, 80, 3), 200, dtype=np.uint8)), "pill")

        self.assertEqual(len(ocr.calls), 1)
        self.assertIsInstance(ocr.calls[0], np.ndarray)
        self.assertEqual(ocr.calls[0].shape, (60, 80))

    def test_undecodable_image_with_preprocessing(self) -> None:
        scanner = DocumentScanner(ocr=FakeOCR("Aspirin"), preprocess=True)
        with self.assertRaises(DocumentProcessingError):
            scanner.process_document(b"not an image", "pill")

    def test_extract_fields_shortcut(self) -> None:
        record = _honest_scanner().extract_fields("Aspirin\n100mg", "pill")
        self.assertEqual(record.dosage, "100mg")


class TestCountPills(unittest.TestCase):
    def test_uniform_gray_reports_floor(self) -> None:
        gray = _png(np.full((120, 160), 128, dtype=np.uint8))
        result = _honest_scanner().count_pills(gray)
        self.assertEqual(result.raw_count, 0)
        self.assertEqual(result.reported_count, 1)

    def test_counts_separate_pills(self) -> None:
        image = np.zeros((100, 200), dtype=np.uint8)
        image[46:54, 46:54] = 255
        image[46:54, 146:154] = 255
        result = _honest_scanner().count_pills(image)
        self.assertEqual(result.raw_count, 2)
        self.assertEqual(result.reported_count, 2)

    def test_unreadable_image(self) -> None:
        with self.assertRaises(UnreadableImageError):
            _honest_scanner().count_pills(b"\x00\x01garbage")

    def test_convenience_function(self) -> None:
        gray = np.full((50, 50), 90, dtype=np.uint8)
        self.assertEqual(count_pills_in_image(gray, perturbation=(0, 0)), 1)


if __name__ == "__main__":
    unittest.main()
