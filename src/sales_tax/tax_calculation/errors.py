"""Errors raised by the tax calculation package."""


class SalesTaxCalculatorValidationError(ValueError):
    """The calculator was constructed with malformed input."""
