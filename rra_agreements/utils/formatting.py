"""Display formatting shared by the template engine and the PDF generator"""

from datetime import date, datetime
from typing import Any, Optional

# Fixed English month names so output does not depend on the process locale
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO date (or datetime) string. Returns None when unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def format_date(value: Any) -> str:
    """Format a date the UK way: '1 March 2025'.

    Values that do not parse as a date are returned unchanged.
    """
    parsed = parse_date(value)
    if parsed is None:
        return "" if value is None else str(value)
    return f"{parsed.day} {MONTH_NAMES[parsed.month - 1]} {parsed.year}"


def format_number(value: Any) -> str:
    """Render a number the way the web client prints it (1200, not 1200.0)"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_currency(amount: Any) -> str:
    """Format a number as pounds sterling with thousands separators"""
    try:
        num = float(amount)
    except (ValueError, TypeError):
        return str(amount)
    if num.is_integer():
        return f"£{num:,.0f}"
    return f"£{num:,.2f}"
