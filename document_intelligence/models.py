"""
Data model for document image intelligence
Records produced by field extraction and pill counting
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .errors import UnsupportedDocumentType


class DocumentType(str, Enum):
    """Kinds of photographs the pipeline understands"""

    PILL = 'pill'
    BILL = 'bill'
    PRESCRIPTION = 'prescription'
    VERIFICATION = 'verification'  # Proof-of-dose photo, no extraction

    @classmethod
    def parse(cls, value) -> 'DocumentType':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedDocumentType(f"Unknown document type: {value!r}") from None


# Ordered, non-empty, trimmed lines of recognized text
RecognizedText = Tuple[str, ...]


@dataclass(frozen=True)
class MedicationEntry:
    """One medication read from a prescription"""
    name: str
    dosage: Optional[str] = None
    instructions: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'name': self.name}
        if self.dosage is not None:
            data['dosage'] = self.dosage
        if self.instructions is not None:
            data['instructions'] = self.instructions
        return data


@dataclass(frozen=True)
class PillInfo:
    name: str = ''
    dosage: str = ''
    instructions: str = ''
    raw_text: str = ''

    document_type = DocumentType.PILL

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BillInfo:
    provider: str = ''
    amount: str = ''
    date: str = ''
    raw_text: str = ''

    document_type = DocumentType.BILL

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PrescriptionInfo:
    doctor: str = ''
    medications: Tuple[MedicationEntry, ...] = ()
    raw_text: str = ''

    document_type = DocumentType.PRESCRIPTION

    def to_dict(self) -> Dict[str, Any]:
        return {
            'doctor': self.doctor,
            'medications': [med.to_dict() for med in self.medications],
            'raw_text': self.raw_text,
        }


FieldRecord = Union[PillInfo, BillInfo, PrescriptionInfo]


@dataclass(frozen=True)
class ScanResult:
    """
    Output of the text engines

    `image` is the caller's input, returned as-is.
    `processed_data` is None when extraction was skipped (verification photos).
    """
    original_text: str
    processed_data: Optional[FieldRecord]
    image: Any
    document_type: DocumentType

    def to_dict(self) -> Dict[str, Any]:
        return {
            'original_text': self.original_text,
            'processed_data': self.processed_data.to_dict() if self.processed_data else {},
            'document_type': self.document_type.value,
            'image': self.image,
        }


@dataclass(frozen=True)
class Region:
    """A sampled window evaluated for pill-likeness during one scan pass"""
    x: int
    y: int
    size: int
    brightness: float
    center_brightness: float
    contrast: float
    is_circular: bool


@dataclass(frozen=True)
class PillCountResult:
    raw_count: int
    reported_count: int
    perturbation: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
