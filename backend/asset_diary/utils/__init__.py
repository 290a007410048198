# backend/asset_diary/utils/__init__.py
"""
Cross-cutting utilities:
- logging: setup with correlation ID support
- context: request-scoped correlation ID
- fx_conversion: display-currency conversion rule

Usage:
    from asset_diary.utils import setup_logging, get_correlation_id
"""

from asset_diary.utils.context import (
    get_correlation_id,
    set_correlation_id,
    reset_correlation_id,
    clear_correlation_id,
)
from asset_diary.utils.logging import setup_logging, get_logger

__all__ = [
    "setup_logging",
    "get_logger",
    "get_correlation_id",
    "set_correlation_id",
    "reset_correlation_id",
    "clear_correlation_id",
]
