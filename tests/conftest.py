"""Pytest configuration and fixtures."""

import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

# Add src to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from sales_tax.policy import TaxPolicy  # noqa: E402
from sales_tax.tax_calculation import (  # noqa: E402
    InMemoryTaxRateStore,
    Product,
    SalesTaxCalculator,
    Seller,
    TaxRate,
)


@pytest.fixture
def seller():
    return Seller(id="seller-1")


@pytest.fixture
def product(seller):
    return Product(id="product-1", native_type="digital", seller=seller)


@pytest.fixture
def physical_product(seller):
    return Product(id="product-2", native_type="physical", is_physical=True, seller=seller)


@pytest.fixture
def epublication_product(seller):
    return Product(id="product-3", native_type="ebook", is_epublication=True, seller=seller)


@pytest.fixture
def rate_store():
    return InMemoryTaxRateStore()


@pytest.fixture
def policy():
    return TaxPolicy()


@pytest.fixture
def tax_api():
    """A TaxJar stand-in; tests set ``calculate_tax_for_order`` behaviour."""
    return MagicMock()


@pytest.fixture
def make_rate(rate_store):
    """Create a live, platform-collected rate in the in-memory store."""
    counter = {"n": 0}

    def _make_rate(country, combined_rate, **kwargs):
        counter["n"] += 1
        kwargs.setdefault("id", f"rate-{counter['n']}")
        kwargs.setdefault("created_at", datetime(2020, 1, 1, 0, 0, counter["n"]))
        rate = TaxRate(country=country, combined_rate=Decimal(str(combined_rate)), **kwargs)
        return rate_store.add(rate)

    return _make_rate


@pytest.fixture
def calculate(rate_store, policy):
    """Run a calculation with the shared store; keyword overrides go to the calculator."""

    def _calculate(product, price_cents, buyer_location, **kwargs):
        kwargs.setdefault("policy", policy)
        kwargs.setdefault("rate_store", rate_store)
        return SalesTaxCalculator(product, price_cents, buyer_location, **kwargs).calculate()

    return _calculate


def geocode(country, *subdivisions):
    """Shape of a GeoIP2 city record as read by the calculator."""
    return SimpleNamespace(
        country=SimpleNamespace(iso_code=country),
        subdivisions=[SimpleNamespace(name=name) for name in subdivisions],
    )


def taxjar_response(rate, amount_to_collect, breakdown=None, jurisdictions=None):
    return {
        "rate": rate,
        "amount_to_collect": amount_to_collect,
        "breakdown": breakdown or {},
        "jurisdictions": jurisdictions or {},
    }
