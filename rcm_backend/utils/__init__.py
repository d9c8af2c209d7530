"""Shared utility functions for the RCM claim core."""

from .date_parser import parse_flexible_date, require_date
from .field_paths import get_field, parse_field_path, set_field
from .money import ZERO, to_money

__all__ = [
    "parse_flexible_date",
    "require_date",
    "get_field",
    "parse_field_path",
    "set_field",
    "ZERO",
    "to_money",
]
