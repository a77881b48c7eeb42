"""
Multi-engine OCR for document photos
Combines EasyOCR (handwriting) and Tesseract (printed labels and bills)
and returns text line by line, top to bottom
"""

import io
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np

from . import config
from .config import EASYOCR_CONFIG, OCR_ENGINES, TESSERACT_CONFIG
from .errors import OCRUnavailableError

logger = logging.getLogger(__name__)


def _group_easyocr_lines(results) -> List[str]:
    """
    Rebuild text lines from EasyOCR boxes

    A box joins the current line when its vertical center falls within
    half a box height of the line's first box.
    """
    boxes = []
    for bbox, text, _ in results:
        ys = [point[1] for point in bbox]
        xs = [point[0] for point in bbox]
        top, bottom = min(ys), max(ys)
        boxes.append((top, bottom, min(xs), text))

    lines: List[List[tuple]] = []
    for box in sorted(boxes, key=lambda b: (b[0], b[2])):
        center = (box[0] + box[1]) / 2
        if lines:
            anchor = lines[-1][0]
            anchor_center = (anchor[0] + anchor[1]) / 2
            if abs(center - anchor_center) <= (anchor[1] - anchor[0]) / 2:
                lines[-1].append(box)
                continue
        lines.append([box])

    return [' '.join(b[3] for b in sorted(line, key=lambda b: b[2])) for line in lines]


def _group_tesseract_lines(data) -> Tuple[List[str], List[float], List[Dict]]:
    """
    Rebuild text lines from a pytesseract `image_to_data` dict

    Words are keyed by (page, block, paragraph, line) and ordered by word
    number, so layout order survives regardless of row order.
    """
    words_by_line: Dict[tuple, List[tuple]] = {}
    confidences = []
    details = []

    for i in range(len(data['text'])):
        text = str(data['text'][i]).strip()
        conf = float(data['conf'][i])
        if not text or conf < 0:
            continue

        key = (int(data['page_num'][i]), int(data['block_num'][i]),
               int(data['par_num'][i]), int(data['line_num'][i]))
        words_by_line.setdefault(key, []).append((int(data['word_num'][i]), text))
        confidences.append(conf / 100.0)
        details.append({
            'text': text,
            'confidence': conf / 100.0,
            'bbox': [data['left'][i], data['top'][i],
                     data['width'][i], data['height'][i]]
        })

    lines = [
        ' '.join(text for _, text in sorted(words_by_line[key], key=lambda w: w[0]))
        for key in sorted(words_by_line)
    ]
    return lines, confidences, details


class DocumentOCR:
    """
    OCR collaborator for the document scanner
    Engines are initialised lazily on first use
    """

    def __init__(self, use_gpu=None, default_engine=None):
        # Read at construction time; load_environment() may refresh them
        self.use_gpu = config.USE_GPU if use_gpu is None else use_gpu
        self.default_engine = default_engine or config.DEFAULT_ENGINE
        self.engines = {}
        self._easyocr_initialized = False
        self._tesseract_initialized = False

    def _initialize_engines(self):
        """Initialize OCR engines (called lazily on first use)"""
        if OCR_ENGINES.get('easyocr') and not self._easyocr_initialized:
            try:
                logger.info("🔄 Initializing EasyOCR (may download models on first run, ~100MB)...")
                import easyocr
                self.engines['easyocr'] = easyocr.Reader(
                    EASYOCR_CONFIG['languages'],
                    gpu=self.use_gpu,
                    verbose=False,
                    download_enabled=True
                )
                logger.info("✅ EasyOCR ready")
            except Exception as e:
                logger.warning(f"⚠️  EasyOCR initialization failed: {e}")
                self.engines['easyocr'] = None
            self._easyocr_initialized = True

        if OCR_ENGINES.get('tesseract') and not self._tesseract_initialized:
            try:
                import pytesseract
                pytesseract.get_tesseract_version()
                self.engines['tesseract'] = pytesseract
                logger.info("✅ Tesseract ready")
            except Exception as e:
                logger.warning(f"⚠️  Tesseract not available: {e}")
                self.engines['tesseract'] = None
            self._tesseract_initialized = True

    def available_engines(self) -> List[str]:
        self._initialize_engines()
        return [name for name, engine in self.engines.items() if engine is not None]

    def extract_text(self, image, engine: Optional[str] = None) -> Dict:
        """
        Extract text from a document image

        Args:
            image: Numpy array, raw bytes or image path
            engine: 'easyocr', 'tesseract', 'ensemble' or 'auto'

        Returns:
            Dict with text, confidence, details, and engine_used
        """
        engine = engine or self.default_engine
        self._initialize_engines()

        if engine == 'ensemble':
            return self.extract_with_ensemble(image)

        if engine == 'auto':
            if self.engines.get('easyocr'):
                engine = 'easyocr'
            elif self.engines.get('tesseract'):
                engine = 'tesseract'
            else:
                raise OCRUnavailableError("No OCR engine available. Install easyocr or tesseract.")

        logger.info(f"Using OCR engine: {engine}")

        if engine == 'easyocr':
            return self._extract_with_easyocr(image)
        elif engine == 'tesseract':
            return self._extract_with_tesseract(image)
        else:
            raise ValueError(f"Unknown engine: {engine}")

    def _extract_with_easyocr(self, image) -> Dict:
        if not self.engines.get('easyocr'):
            raise OCRUnavailableError("EasyOCR not available")

        if isinstance(image, Path):
            image = str(image)

        reader = self.engines['easyocr']
        # EasyOCR returns: [([bbox], text, confidence), ...]
        results = reader.readtext(
            image,
            detail=EASYOCR_CONFIG['detail'],
            paragraph=EASYOCR_CONFIG['paragraph'],
            decoder=EASYOCR_CONFIG['decoder'],
            beamWidth=5,
            batch_size=1
        )

        confidences = [conf for _, _, conf in results]
        details = [{'text': text, 'confidence': conf, 'bbox': bbox} for bbox, text, conf in results]
        lines = _group_easyocr_lines(results)
        avg_confidence = np.mean(confidences) if confidences else 0.0

        logger.info(f"✅ EasyOCR extracted {len(lines)} lines, confidence: {avg_confidence:.2f}")

        return {
            'text': '\n'.join(lines),
            'confidence': float(avg_confidence),
            'details': details,
            'engine_used': 'easyocr',
        }

    def _extract_with_tesseract(self, image) -> Dict:
        if not self.engines.get('tesseract'):
            raise OCRUnavailableError("Tesseract not available")

        import pytesseract
        from PIL import Image

        if isinstance(image, np.ndarray):
            pil_image = Image.fromarray(image)
        elif isinstance(image, (bytes, bytearray)):
            pil_image = Image.open(io.BytesIO(image))
        else:
            pil_image = Image.open(image)

        data = pytesseract.image_to_data(
            pil_image,
            lang=TESSERACT_CONFIG['lang'],
            output_type=pytesseract.Output.DICT,
            config=TESSERACT_CONFIG['config']
        )

        lines, confidences, details = _group_tesseract_lines(data)
        avg_confidence = np.mean(confidences) if confidences else 0.0

        logger.info(f"✅ Tesseract extracted {len(lines)} lines, confidence: {avg_confidence:.2f}")

        return {
            'text': '\n'.join(lines),
            'confidence': float(avg_confidence),
            'details': details,
            'engine_used': 'tesseract',
        }

    def extract_with_ensemble(self, image) -> Dict:
        """Run every available engine and keep the most confident result"""
        results = []

        for engine_name in ['easyocr', 'tesseract']:
            if self.engines.get(engine_name):
                try:
                    results.append(self.extract_text(image, engine=engine_name))
                except Exception as e:
                    logger.warning(f"{engine_name} failed: {e}")

        if not results:
            raise OCRUnavailableError("All OCR engines failed")

        best_result = max(results, key=lambda x: x['confidence'])
        best_result['all_engines'] = [r['engine_used'] for r in results]
        best_result['engine_used'] = 'ensemble'
        return best_result
