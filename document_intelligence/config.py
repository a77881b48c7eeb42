"""
Configuration for the Document Image Intelligence system

Settings are read from the process environment when this module is
imported. The package never reads a `.env` file on its own; host
applications call `load_environment()` at startup to pick one up.
"""

import os

from dotenv import find_dotenv, load_dotenv


def _env_flag(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# OCR Settings
OCR_ENGINES = {
    'tesseract': True,  # Good for printed labels and bills
    'easyocr': True,    # Better for handwritten prescriptions
}

# 'auto' tries EasyOCR first, then Tesseract
DEFAULT_ENGINE = os.getenv('OCR_ENGINE', 'auto')
USE_GPU = _env_flag('OCR_USE_GPU')

# EasyOCR Settings
EASYOCR_CONFIG = {
    'languages': ['en'],
    'detail': 1,   # Bounding boxes are needed to rebuild text lines
    'paragraph': False,
    'decoder': 'beamsearch',
}

# Tesseract Settings
TESSERACT_CONFIG = {
    'lang': 'eng',
    'config': '--psm 6 --oem 3',  # PSM 6: uniform block of text, OEM 3: default
}

# Image preprocessing applied before OCR
PREPROCESSING = {
    'enabled': _env_flag('OCR_PREPROCESS', default=True),
    'resize_width': 2000,
    'denoise': True,
    'contrast_enhancement': True,
    'deskew': True,
    'adaptive_threshold': True,
}

# Dosage units recognised on labels and prescriptions
DOSAGE_UNITS = ['mg', 'ml', 'mcg', 'g', 'units?']

# Words that mark a line as a usage instruction
INSTRUCTION_KEYWORDS = ['take', 'tablet', 'capsule', 'daily', 'twice', 'morning', 'evening']

# Prescriptions also carry "Sig:" directions
SIG_KEYWORDS = INSTRUCTION_KEYWORDS + ['sig']

# Leading words of a direction line; such lines never open a new medication
DIRECTIVE_LEAD_WORDS = [
    'take', 'sig', 'use', 'apply', 'give', 'once', 'twice', 'daily',
    'every', 'morning', 'evening', 'with', 'before', 'after',
]

BILL_AMOUNT_KEYWORDS = ['total', 'amount', 'due']
BILL_PROVIDER_KEYWORDS = ['hospital', 'clinic', 'medical', 'pharmacy', r'dr\.', 'doctor']
DOCTOR_KEYWORDS = [r'dr\.', 'doctor', 'md', 'physician']

# Blob detection for pill counting
BLOB_DETECTION = {
    'min_pill_size': 20,       # Window edge in pixels
    'stride': 5,               # Grid sampling step in pixels
    'circular_contrast': 20,   # Center/surround contrast for a convex, lit blob
    'detection_contrast': 100, # Contrast needed to count a blob
}

# Pill count reporting
PILL_COUNT = {
    'demo_mode': _env_flag('PILL_COUNT_DEMO_MODE'),
    'demo_perturbation': (-1, 1),
    'perturbation': (0, 0),
    'minimum_count': 1,
}


def apply_environment():
    """Re-read the environment overrides into the settings above"""
    global DEFAULT_ENGINE, USE_GPU
    DEFAULT_ENGINE = os.getenv('OCR_ENGINE', 'auto')
    USE_GPU = _env_flag('OCR_USE_GPU')
    PREPROCESSING['enabled'] = _env_flag('OCR_PREPROCESS', default=True)
    PILL_COUNT['demo_mode'] = _env_flag('PILL_COUNT_DEMO_MODE')


def load_environment(dotenv_path=None, override=False):
    """
    Load a .env file and refresh the environment-driven settings

    Without a path, the nearest .env above the working directory is used.
    Variables already set by the host win unless `override` is True.
    Returns True when a .env file was found and read.
    """
    if dotenv_path is None:
        dotenv_path = find_dotenv(usecwd=True)
    loaded = load_dotenv(dotenv_path, override=override)
    apply_environment()
    return loaded
