"""Tests for business VAT / tax ID validation."""

import logging

import pytest

from sales_tax.integrations.vat_validation import (
    AbnValidator,
    FirsTinValidator,
    GstValidator,
    KraPinValidator,
    MvaValidator,
    OmanVatNumberValidator,
    QstValidator,
    TaxIdValidator,
    TraTinValidator,
    TrnValidator,
    VatIdCheck,
    VatIdValidationError,
    VatIdValidator,
    VatIdValidatorRegistry,
    VatValidator,
    normalize_tax_id,
)


@pytest.fixture
def registry():
    return VatIdValidatorRegistry()


class TestDispatch:
    @pytest.mark.parametrize(
        "country, state, expected",
        [
            ("AU", None, AbnValidator),
            ("SG", None, GstValidator),
            ("CA", "QC", QstValidator),
            ("NO", None, MvaValidator),
            ("KE", None, KraPinValidator),
            ("BH", None, TrnValidator),
            ("OM", None, OmanVatNumberValidator),
            ("NG", None, FirsTinValidator),
            ("TZ", None, TraTinValidator),
            ("JP", None, TaxIdValidator),
            ("MX", None, TaxIdValidator),
            ("DE", None, VatValidator),
            ("CA", "ON", VatValidator),
            ("US", None, VatValidator),
        ],
    )
    def test_validator_for(self, registry, country, state, expected):
        assert type(registry.validator_for(country, state)) is expected

    def test_tax_id_validator_carries_country(self, registry):
        assert registry.validator_for("jp").country == "JP"

    def test_register_overrides(self, registry):
        custom = VatIdValidator()
        registry.register("de", custom)

        assert registry.validator_for("DE") is custom


class TestCheck:
    @pytest.mark.parametrize(
        "tax_id, country, state",
        [
            ("51 824 753 556", "AU", None),
            ("M90364259A", "SG", None),
            ("1002092821TQ0001", "CA", "QC"),
            ("NO 974 760 673 MVA", "NO", None),
            ("P051234567X", "KE", None),
            ("200000000000003", "BH", None),
            ("OM1100012345", "OM", None),
            ("12345678-0001", "NG", None),
            ("123-456-789", "TZ", None),
            ("T1234567890123", "JP", None),
            ("DE123456789", "DE", None),
            ("ATU12345678", "AT", None),
            ("NL123456789B01", "NL", None),
        ],
    )
    def test_valid(self, registry, tax_id, country, state):
        assert registry.check(tax_id, country, state) is VatIdCheck.VALID

    @pytest.mark.parametrize(
        "tax_id, country, state",
        [
            ("51824753557", "AU", None),
            ("974760674", "NO", None),
            ("1002092821", "CA", "QC"),
            ("DE12345", "DE", None),
            ("FR123456789", "DE", None),
            ("XX123456789", "DE", None),
            ("B1234567X", "KE", None),
        ],
    )
    def test_invalid(self, registry, tax_id, country, state):
        assert registry.check(tax_id, country, state) is VatIdCheck.INVALID

    @pytest.mark.parametrize("tax_id", [None, "", "   "])
    def test_blank_is_unchecked(self, registry, tax_id):
        assert registry.check(tax_id, "DE") is VatIdCheck.UNCHECKED

    def test_validator_failure_is_unchecked(self, registry, caplog):
        caplog.set_level(logging.WARNING, logger="sales_tax")
        class Unreachable(VatIdValidator):
            def validate(self, tax_id):
                raise VatIdValidationError("VIES unavailable")

        registry.register("DE", Unreachable())

        assert registry.check("DE123456789", "DE") is VatIdCheck.UNCHECKED
        assert "VIES unavailable" in caplog.text

    def test_other_errors_propagate(self, registry):
        class Broken(VatIdValidator):
            def validate(self, tax_id):
                raise KeyError("bug")

        registry.register("DE", Broken())

        with pytest.raises(KeyError):
            registry.check("DE123456789", "DE")


def test_normalize_tax_id():
    assert normalize_tax_id(" de 123.456-789/ ") == "DE123456789"


def test_generic_tax_id_pattern():
    validator = TaxIdValidator("CO")

    assert validator.validate("900123456") is VatIdCheck.VALID
    assert validator.validate("12") is VatIdCheck.INVALID
