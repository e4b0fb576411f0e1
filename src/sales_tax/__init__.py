"""
Sales Tax - sales tax and VAT determination for storefront purchases

Decides, per purchase, whether tax applies, which jurisdiction's rate governs,
when TaxJar is consulted, and how business tax ID exemptions apply.
"""

__version__ = "0.1.0"

from . import tax_calculation
from . import utils
from .policy import TaxPolicy
from .tax_calculation import SalesTaxCalculation, SalesTaxCalculator

__all__ = ["SalesTaxCalculation", "SalesTaxCalculator", "TaxPolicy", "tax_calculation", "utils"]
