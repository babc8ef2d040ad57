"""
Marketplace Utility Functions
Helpers for references, pricing and money formatting.
"""

import secrets
import string
from datetime import datetime
from typing import Iterable, Tuple

from django.conf import settings


# ==========================================
# REFERENCES
# ==========================================

def generate_reference(prefix: str = 'REF', length: int = 10) -> str:
    """
    Generate unique reference code

    Args:
        prefix: Reference prefix (e.g., 'DR', 'CR', 'FUND')
        length: Length of random part

    Returns:
        Reference string (e.g., 'FUND_20240101_A8K3M9P2L5')
    """
    chars = string.ascii_uppercase + string.digits
    random_part = ''.join(secrets.choice(chars) for _ in range(length))
    timestamp = datetime.now().strftime('%Y%m%d')

    return f"{prefix}_{timestamp}_{random_part}"


# ==========================================
# MONEY & CALCULATIONS
# ==========================================

def delivery_fee_for(delivery_method: str) -> int:
    """Flat fee for delivery orders, nothing for pickup"""
    if delivery_method == 'delivery':
        return int(getattr(settings, 'UNIVEND_DELIVERY_FEE', 500))
    return 0


def calculate_order_totals(lines: Iterable[Tuple[int, int]], delivery_method: str) -> Tuple[int, int, int]:
    """
    Price a list of (unit_price, quantity) pairs.

    Returns:
        Tuple of (subtotal, delivery_fee, total)
    """
    subtotal = sum(price * quantity for price, quantity in lines)
    fee = delivery_fee_for(delivery_method)
    return subtotal, fee, subtotal + fee


def format_currency(amount: int, currency: str = 'NGN') -> str:
    """
    Format amount as currency string

    Returns:
        Formatted string (e.g., '₦10,000')
    """
    symbol = '₦' if currency == 'NGN' else currency
    return f"{symbol}{amount:,}"
