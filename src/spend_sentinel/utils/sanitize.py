"""Guard exported text cells against spreadsheet formula evaluation."""

from typing import Optional

# Leading characters that make Excel, LibreOffice or Sheets treat a cell as a
# formula or a DDE call
FORMULA_PREFIXES = ("=", "+", "-", "@", "|", "\t", "\r", "\n")


def sanitize_for_csv(value: Optional[str]) -> Optional[str]:
    """Quote a free-text value that a spreadsheet would evaluate.

    Merchant names, notes and alert text can come straight from an imported
    CSV. A leading single quote makes "=HYPERLINK(...)" display as text.

    Args:
        value: Cell text, or None.

    Returns:
        The value, prefixed with "'" when it starts like a formula.
    """
    if value and value.startswith(FORMULA_PREFIXES):
        return f"'{value}"
    return value
