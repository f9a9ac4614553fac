"""expiry-months — Add shelf-life month counts to inventory spreadsheets."""

__version__ = "0.2.0"

REQUIRED_COLUMNS: tuple[str, ...] = ("Дата изготовления", "Срок годности")
"""Manufacture date and expiry date headers; both must be present."""

COMPUTED_COLUMNS: tuple[str, ...] = ("Срок годности в месяцах общий", "Осталось месяцев")
"""Total shelf-life months and remaining months, appended in this order."""

OUTPUT_SHEET_NAME = "TDSheet"

SUPPORTED_SUFFIXES: tuple[str, ...] = (".xlsx", ".xls")
