"""Parsers for registry feeds and phone numbers."""

from .phone_number import InvalidNumberError, split_number
from .registry_csv import RegistryRow, parse_registry_csv

__all__ = [
    "parse_registry_csv",
    "RegistryRow",
    "split_number",
    "InvalidNumberError",
]
