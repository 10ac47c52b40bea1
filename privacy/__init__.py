"""
Privacy Module for the Intent Router.

This module keeps personal data away from the routing classifier:
- PII detection (emails, phone numbers, person names)
- Reversible, request-scoped token masking
- Token extraction and unmasking
"""

from .pii_masker import (
    MaskingConfig,
    MaskingResult,
    PIICategory,
    PIIMasker,
    PIIToken,
    contains_pii,
    extract_masked_tokens,
    mask,
    unmask,
)

__all__ = [
    "MaskingConfig",
    "MaskingResult",
    "PIICategory",
    "PIIMasker",
    "PIIToken",
    "contains_pii",
    "extract_masked_tokens",
    "mask",
    "unmask",
]
