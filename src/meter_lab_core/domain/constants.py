"""
Domain Constants

Centrally manages constants shared across the recognition lab.
"""

# Default vision model used for recognition runs
DEFAULT_MODEL = "claude-sonnet-4-20250514"

# Model pricing (USD / 1M tokens)
MODEL_PRICING = {
    "claude-sonnet-4-20250514": {"input": 3.0, "output": 15.0},
    "claude-sonnet-4-5-20250929": {"input": 3.0, "output": 15.0},
    "claude-haiku-4-5-20251001": {"input": 0.80, "output": 4.0},
    "claude-opus-4-5-20251101": {"input": 15.0, "output": 75.0},
    "gemini-2.5-pro": {"input": 1.25, "output": 5.0},
    "gemini-2.5-flash": {"input": 0.075, "output": 0.30},
}

# Default pricing for local models (LMStudio, etc.)
_LOCAL_MODEL_PRICING = {"input": 0.0, "output": 0.0}

# Field of the extracted payload compared against ground truth
PRIMARY_FIELD = "reading"

# Folder gating
DEFAULT_MIN_PHOTOS = 5

# Policy constants (tunable through lab_config.PolicyConfig)
PROMOTION_MIN_ACCURACY = 0.70
AB_MATERIALITY_THRESHOLD = 0.02

# Duplicate detection: images per inference call besides the candidate
DUPLICATE_BATCH_SIZE = 5

# Confidence distribution bucket floors (high >= 0.9, medium >= 0.7, low >= 0.5)
CONFIDENCE_HIGH = 0.9
CONFIDENCE_MEDIUM = 0.7
CONFIDENCE_LOW = 0.5

# Error patterns keep at most this many free-text examples per category
ERROR_PATTERN_EXAMPLES = 3

# Confidence bonus when all multi-pass readings agree
MULTI_PASS_AGREEMENT_BONUS = 0.1

# Readings above this value are considered implausible
MAX_PLAUSIBLE_READING = 999_999_999

# Baseline image adjustments applied before any layer override
DEFAULT_PREPROCESSING = {
    "grayscale": False,
    "contrast": 30,
    "brightness": 0,
    "sharpness": 20,
    "saturation": 100,
}

# Perceptual hash grid (32x32 -> 1024 bits -> 256 hex characters)
PHASH_GRID_SIZE = 32
CONTENT_HASH_LENGTH = 32
