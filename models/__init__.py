from .order_line import OrderLine, RiskBucket, RISK_CRITICAL, RISK_WARNING, RISK_OK
from .supplier import SupplierContact
from .result import (
    VendorSummary, DiffItem, VendorComparison, ComparisonReport,
    OrderUpdate, UpdateExtraction,
)

__all__ = [
    "OrderLine", "RiskBucket", "RISK_CRITICAL", "RISK_WARNING", "RISK_OK",
    "SupplierContact",
    "VendorSummary", "DiffItem", "VendorComparison", "ComparisonReport",
    "OrderUpdate", "UpdateExtraction",
]
