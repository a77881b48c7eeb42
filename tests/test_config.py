from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from document_intelligence import config
from document_intelligence.ocr_engine import DocumentOCR
from document_intelligence.pill_counter import PillCountEstimator

ENV_KEYS = ("OCR_ENGINE", "OCR_USE_GPU", "OCR_PREPROCESS", "PILL_COUNT_DEMO_MODE")


class TestLoadEnvironment(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch.dict(os.environ)
        patcher.start()
        for key in ENV_KEYS:
            os.environ.pop(key, None)
        # Stop the patch first, then re-read the restored environment
        self.addCleanup(config.apply_environment)
        self.addCleanup(patcher.stop)

        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def _write_env(self, body: str) -> Path:
        path = Path(self.tmp.name) / ".env"
        path.write_text(body)
        return path

    def test_import_does_not_read_dotenv(self) -> None:
        source = Path(config.__file__).read_text()
        module_level = [line for line in source.splitlines() if line.startswith("load_dotenv(")]
        self.assertEqual(module_level, [])

    def test_dotenv_values_refresh_settings(self) -> None:
        path = self._write_env(
            "OCR_ENGINE=tesseract\nOCR_USE_GPU=true\nOCR_PREPROCESS=false\nPILL_COUNT_DEMO_MODE=1\n"
        )
        self.assertTrue(config.load_environment(path))

        self.assertEqual(config.DEFAULT_ENGINE, "tesseract")
        self.assertTrue(config.USE_GPU)
        self.assertFalse(config.PREPROCESSING["enabled"])
        self.assertTrue(config.PILL_COUNT["demo_mode"])

        ocr = DocumentOCR()
        self.assertEqual((ocr.default_engine, ocr.use_gpu), ("tesseract", True))
        self.assertEqual(PillCountEstimator().perturbation, (-1, 1))

    def test_host_environment_wins_by_default(self) -> None:
        path = self._write_env("OCR_ENGINE=tesseract\n")
        os.environ["OCR_ENGINE"] = "easyocr"

        config.load_environment(path)
        self.assertEqual(config.DEFAULT_ENGINE, "easyocr")

        config.load_environment(path, override=True)
        self.assertEqual(config.DEFAULT_ENGINE, "tesseract")

    def test_missing_file_keeps_defaults(self) -> None:
        self.assertFalse(config.load_environment(Path(self.tmp.name) / "absent.env"))
        self.assertEqual(config.DEFAULT_ENGINE, "auto")
        self.assertFalse(config.PILL_COUNT["demo_mode"])
        self.assertTrue(config.PREPROCESSING["enabled"])

    def test_explicit_arguments_beat_config(self) -> None:
        os.environ["OCR_ENGINE"] = "tesseract"
        config.apply_environment()
        self.assertEqual(DocumentOCR(default_engine="easyocr", use_gpu=False).default_engine, "easyocr")


if __name__ == "__main__":
    unittest.main()
