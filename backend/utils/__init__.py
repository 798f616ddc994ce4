"""
Utility functions
"""
from .datetime_utils import to_iso, utc_now_iso, parse_iso
from .id_generator import generate_statement_id

__all__ = ['to_iso', 'utc_now_iso', 'parse_iso', 'generate_statement_id']
