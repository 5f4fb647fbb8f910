"""Masking for bank details returned by the API"""

from typing import Optional


def mask_account_number(value: Optional[str]) -> Optional[str]:
    """
    Keep only the last four digits of bank account and routing numbers.
    """
    if not value:
        return value
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]
