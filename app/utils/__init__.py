"""
Utility modules for the volunteer hub.

This package contains reusable helpers:
- helpers: Common utility functions (date normalization, input validation)
- week_window: Saturday-to-Friday compliance week calculation
- errors: API error types rendered as JSON responses
"""

from app.utils.helpers import format_utc_iso, to_naive_utc
from app.utils.week_window import ReportWindow, compute_report_window

__all__ = [
    'format_utc_iso',
    'to_naive_utc',
    'ReportWindow',
    'compute_report_window',
]
