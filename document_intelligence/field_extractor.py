"""
Field extraction for recognized document text
Turns classified OCR lines into pill, bill and prescription records
"""

import re
import logging
from typing import Callable, Dict, List, Optional

from .config import (
    BILL_AMOUNT_KEYWORDS,
    BILL_PROVIDER_KEYWORDS,
    DIRECTIVE_LEAD_WORDS,
    DOCTOR_KEYWORDS,
    DOSAGE_UNITS,
    INSTRUCTION_KEYWORDS,
    SIG_KEYWORDS,
)
from .line_classifier import (
    ClassifiedLine,
    LineRule,
    classify_lines,
    first_tagged,
    keyword_pattern,
    split_lines,
)
from .models import (
    BillInfo,
    DocumentType,
    FieldRecord,
    MedicationEntry,
    PillInfo,
    PrescriptionInfo,
)

logger = logging.getLogger(__name__)

# Shared patterns
DOSAGE_PATTERN = re.compile(rf"\d+\s*(?:{'|'.join(DOSAGE_UNITS)})", re.IGNORECASE)
DATE_PATTERN = re.compile(r'\d{1,2}[/-]\d{1,2}[/-]\d{2,4}')
CURRENCY_PATTERN = re.compile(r'\$?\d+\.?\d*')
CAPITALIZED_START = re.compile(r'^[A-Z]')

# Rule tables. Order within a table is priority order.
PILL_RULES = (
    LineRule(
        'name',
        patterns=(CAPITALIZED_START,),
        excludes=(re.compile(r'mg|ml', re.IGNORECASE),),
        min_length=4,
    ),
    LineRule('dosage', patterns=(DOSAGE_PATTERN,)),
    LineRule('instructions', patterns=(keyword_pattern(INSTRUCTION_KEYWORDS),)),
)

BILL_RULES = (
    LineRule('amount', patterns=(keyword_pattern(BILL_AMOUNT_KEYWORDS), CURRENCY_PATTERN)),
    LineRule('date', patterns=(DATE_PATTERN,)),
    LineRule('provider', patterns=(keyword_pattern(BILL_PROVIDER_KEYWORDS),), min_length=6),
)

PRESCRIPTION_RULES = (
    LineRule(
        'medication_start',
        patterns=(CAPITALIZED_START,),
        excludes=(
            re.compile(r'Dr\.|MD'),
            re.compile(rf"^(?:{'|'.join(DIRECTIVE_LEAD_WORDS)})(?=\s|:|$)", re.IGNORECASE),
        ),
    ),
    LineRule('dosage', patterns=(DOSAGE_PATTERN,)),
    LineRule('instructions', patterns=(keyword_pattern(SIG_KEYWORDS),)),
    LineRule('doctor', patterns=(keyword_pattern(DOCTOR_KEYWORDS),)),
)

# Per-line dispatch order for the prescription state machine; first hit wins
PRESCRIPTION_DISPATCH = ('medication_start', 'dosage', 'instructions')


class PrescriptionParser:
    """
    Single-pass medication parser

    The only state is the currently open entry. A medication-start line
    flushes the open entry and opens a new one; dosage and instruction
    lines update the open entry; `finish` flushes whatever is still open.
    """

    def __init__(self):
        self._open: Optional[MedicationEntry] = None
        self._medications: List[MedicationEntry] = []
        self._transitions: Dict[str, Callable[[str], None]] = {
            'medication_start': self._start,
            'dosage': self._set_dosage,
            'instructions': self._set_instructions,
        }

    @property
    def open_entry(self) -> Optional[MedicationEntry]:
        return self._open

    def feed(self, line: ClassifiedLine):
        for tag in PRESCRIPTION_DISPATCH:
            if line.has(tag):
                self._transitions[tag](line.text)
                return

    def finish(self) -> List[MedicationEntry]:
        self._flush()
        medications, self._medications = self._medications, []
        return medications

    def _flush(self):
        if self._open is not None:
            self._medications.append(self._open)
            self._open = None

    def _start(self, text: str):
        self._flush()
        self._open = MedicationEntry(name=text)

    def _set_dosage(self, text: str):
        # Lines before the first medication name have nothing to attach to
        if self._open is not None:
            self._open = MedicationEntry(self._open.name, text, self._open.instructions)

    def _set_instructions(self, text: str):
        if self._open is not None:
            self._open = MedicationEntry(self._open.name, self._open.dosage, text)


class FieldExtractor:
    """
    Extract structured fields from OCR text
    One extraction function per document type, no rules shared across types
    """

    def __init__(self):
        self._extractors: Dict[DocumentType, Callable[[str], FieldRecord]] = {
            DocumentType.PILL: self.extract_pill,
            DocumentType.BILL: self.extract_bill,
            DocumentType.PRESCRIPTION: self.extract_prescription,
        }
        missing = [
            t for t in DocumentType
            if t is not DocumentType.VERIFICATION and t not in self._extractors
        ]
        if missing:
            raise RuntimeError(f"No extractor registered for: {missing}")

    def extract(self, text: str, document_type) -> Optional[FieldRecord]:
        """
        Extract the record for `document_type`

        Args:
            text: Recognized text, as returned by OCR
            document_type: DocumentType or its string value

        Returns:
            PillInfo, BillInfo or PrescriptionInfo; None for verification photos
        """
        document_type = DocumentType.parse(document_type)
        if document_type is DocumentType.VERIFICATION:
            return None
        return self._extractors[document_type](text or '')

    def extract_pill(self, text: str) -> PillInfo:
        lines = classify_lines(split_lines(text), PILL_RULES)
        record = PillInfo(
            name=first_tagged(lines, 'name'),
            dosage=first_tagged(lines, 'dosage'),
            instructions=first_tagged(lines, 'instructions'),
            raw_text=text,
        )
        logger.info(f"💊 Pill label: name={record.name!r} dosage={record.dosage!r}")
        return record

    def extract_bill(self, text: str) -> BillInfo:
        lines = classify_lines(split_lines(text), BILL_RULES)
        record = BillInfo(
            provider=first_tagged(lines, 'provider'),
            amount=first_tagged(lines, 'amount'),
            date=first_tagged(lines, 'date'),
            raw_text=text,
        )
        logger.info(f"🧾 Bill: provider={record.provider!r} amount={record.amount!r}")
        return record

    def extract_prescription(self, text: str) -> PrescriptionInfo:
        lines = classify_lines(split_lines(text), PRESCRIPTION_RULES)

        parser = PrescriptionParser()
        for line in lines:
            parser.feed(line)
        medications = parser.finish()

        record = PrescriptionInfo(
            doctor=first_tagged(lines, 'doctor'),
            medications=tuple(medications),
            raw_text=text,
        )
        logger.info(f"📝 Prescription: {len(medications)} medications found")
        return record


# Standalone function
def extract_fields(text: str, document_type) -> Optional[FieldRecord]:
    """Quick function to extract a record from recognized text"""
    return FieldExtractor().extract(text, document_type)
