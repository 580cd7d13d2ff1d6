"""Excel export layer."""
from eph_billing.excel.generator import generate_excel_report

__all__ = ["generate_excel_report"]
