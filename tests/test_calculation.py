"""Tests for the SalesTaxCalculation value object."""

from decimal import Decimal

import pytest

from sales_tax.policy import TaxPolicy
from sales_tax.tax_calculation import SalesTaxCalculation, TaxRate, VatStatus


def rate(country, combined_rate="0.20", **kwargs):
    return TaxRate(country=country, combined_rate=Decimal(combined_rate), **kwargs)


class TestConstructors:
    def test_zero_tax(self):
        calculation = SalesTaxCalculation.zero_tax(1500)

        assert calculation.price_cents == 1500
        assert calculation.tax_cents == 0
        assert calculation.tax_rate is None
        assert calculation.business_vat_status is None
        assert calculation.used_taxjar is False
        assert calculation.is_marketplace_facilitator is False
        assert calculation.taxjar_info is None

    def test_zero_business_vat(self):
        calculation = SalesTaxCalculation.zero_business_vat(1500)

        assert calculation.tax_cents == 0
        assert calculation.business_vat_status is VatStatus.VALID

    def test_tax_is_coerced_to_decimal(self):
        calculation = SalesTaxCalculation(price_cents=100, tax_cents=12)

        assert isinstance(calculation.tax_cents, Decimal)

    @pytest.mark.parametrize("price", [-1, 1.5, True])
    def test_invalid_price(self, price):
        with pytest.raises(ValueError):
            SalesTaxCalculation(price_cents=price, tax_cents=Decimal(0))

    def test_negative_tax(self):
        with pytest.raises(ValueError):
            SalesTaxCalculation(price_cents=100, tax_cents=Decimal("-0.01"))

    def test_is_immutable(self):
        calculation = SalesTaxCalculation.zero_tax(100)

        with pytest.raises(AttributeError):
            calculation.tax_cents = Decimal(5)


class TestVatIdInput:
    @pytest.mark.parametrize("country", ["DE", "GB", "AU", "SG", "NO", "JP", "KE"])
    def test_countries_with_id_input(self, country):
        calculation = SalesTaxCalculation(price_cents=100, tax_cents=Decimal(10), tax_rate=rate(country))

        assert calculation.has_vat_id_input is True

    def test_us_rate(self):
        calculation = SalesTaxCalculation(price_cents=100, tax_cents=Decimal(6), tax_rate=rate("US", state="TX"))

        assert calculation.has_vat_id_input is False

    def test_no_rate(self):
        assert SalesTaxCalculation.zero_tax(100).has_vat_id_input is False

    def test_quebec_without_rate(self):
        calculation = SalesTaxCalculation(price_cents=100, tax_cents=Decimal(15), used_taxjar=True, is_quebec=True)

        assert calculation.has_vat_id_input is True

    def test_follows_policy(self):
        policy = TaxPolicy(gst_countries=frozenset({"AU"}))
        calculation = SalesTaxCalculation(price_cents=100, tax_cents=Decimal(9), tax_rate=rate("SG"), policy=policy)

        assert calculation.has_vat_id_input is False


class TestTaxLabel:
    @pytest.mark.parametrize(
        "country, combined_rate, label",
        [
            ("IT", "0.22", "VAT (22%)"),
            ("NO", "0.25", "VAT (25%)"),
            ("CH", "0.081", "VAT (8%)"),
            ("AU", "0.10", "GST (10%)"),
            ("US", "0.0825", "Sales tax"),
        ],
    )
    def test_with_rate(self, country, combined_rate, label):
        calculation = SalesTaxCalculation(price_cents=100, tax_cents=Decimal(1), tax_rate=rate(country, combined_rate))

        assert calculation.tax_label == label

    def test_taxjar(self):
        calculation = SalesTaxCalculation(price_cents=100, tax_cents=Decimal(8), used_taxjar=True)

        assert calculation.tax_label == "Sales tax"

    def test_untaxed(self):
        assert SalesTaxCalculation.zero_tax(100).tax_label is None


class TestSerialization:
    def test_to_summary(self):
        calculation = SalesTaxCalculation(
            price_cents=1000,
            tax_cents=Decimal("190.00"),
            tax_rate=rate("DE", "0.19"),
            business_vat_status=VatStatus.INVALID,
        )

        assert calculation.to_summary() == {
            "price_cents": 1000,
            "tax_cents": Decimal("190.00"),
            "business_vat_status": "invalid",
            "has_vat_id_input": True,
        }

    def test_to_dict(self):
        calculation = SalesTaxCalculation(
            price_cents=1000,
            tax_cents=Decimal("190.00"),
            tax_rate=rate("DE", "0.19", id="rate-de"),
        )

        result = calculation.to_dict()

        assert result["tax_cents"] == "190.00"
        assert result["tax_label"] == "VAT (19%)"
        assert result["business_vat_status"] is None
        assert result["tax_rate"]["id"] == "rate-de"
        assert result["tax_rate"]["combined_rate"] == "0.19"
        assert result["used_taxjar"] is False

    def test_to_dict_without_rate(self):
        result = SalesTaxCalculation.zero_business_vat(500).to_dict()

        assert result["tax_rate"] is None
        assert result["business_vat_status"] == "valid"
