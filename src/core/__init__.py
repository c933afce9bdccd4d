"""
Core module for cross-cutting concerns.

This module provides:
- Structured logging configuration
- Text and record helpers
"""

from core.logging import bind_context, clear_context, configure_logging, get_logger, log_context
from core.utils import (
    collapse_whitespace,
    fold_accents,
    resolve_path,
    slugify,
    split_csv,
    title_case,
    tokenize_words,
)

__all__ = [
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "log_context",
    "collapse_whitespace",
    "fold_accents",
    "resolve_path",
    "slugify",
    "split_csv",
    "title_case",
    "tokenize_words",
]
