"""Tax calculation module entry point."""

from .calculation import SalesTaxCalculation
from .calculator import SalesTaxCalculator
from .errors import SalesTaxCalculatorValidationError
from .models import BuyerLocation, Product, Seller, TaxRate, VatStatus
from .repository import InMemoryTaxRateStore, TaxRateRepository
from .service import SalesTaxService

__all__ = [
    "BuyerLocation",
    "InMemoryTaxRateStore",
    "Product",
    "SalesTaxCalculation",
    "SalesTaxCalculator",
    "SalesTaxCalculatorValidationError",
    "SalesTaxService",
    "Seller",
    "TaxRate",
    "TaxRateRepository",
    "VatStatus",
]
