"""
工具函数包
"""

from .text_utils import (
    TRUNCATION_MARKER,
    truncate_text,
    normalize_line_endings,
    collapse_blank_lines,
    normalize_whitespace
)

__all__ = [
    "TRUNCATION_MARKER",
    "truncate_text",
    "normalize_line_endings",
    "collapse_blank_lines",
    "normalize_whitespace"
]
