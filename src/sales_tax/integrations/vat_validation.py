"""
Business VAT / tax ID validators.

Each validator answers with a tri-state ``VatIdCheck``. The checks here are
deterministic format and checksum rules; a validator backed by a remote
registry (VIES, ABN Lookup, ...) can be registered in their place and signal
an unreachable service by raising ``VatIdValidationError``.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Dict, Mapping, Optional, Pattern

from .. import compliance
from ..policy import DEFAULT_POLICY, TaxPolicy
from ..utils.logging import get_logger

logger = get_logger(__name__)

_SEPARATORS = re.compile(r"[\s.\-/]")


class VatIdCheck(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    UNCHECKED = "unchecked"


class VatIdValidationError(Exception):
    """The validator could not reach a verdict (e.g. the registry is down)."""


def normalize_tax_id(tax_id: str) -> str:
    return _SEPARATORS.sub("", tax_id or "").upper()


class VatIdValidator:
    """Base validator: a single regular expression over the normalized ID."""

    name = "tax ID"
    pattern: Optional[Pattern[str]] = None

    def validate(self, tax_id: Optional[str]) -> VatIdCheck:
        if not tax_id or not tax_id.strip():
            return VatIdCheck.INVALID
        normalized = normalize_tax_id(tax_id)
        return VatIdCheck.VALID if self.is_valid(normalized) else VatIdCheck.INVALID

    def is_valid(self, normalized: str) -> bool:
        return bool(self.pattern and self.pattern.fullmatch(normalized))

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class AbnValidator(VatIdValidator):
    """Australian Business Number: 11 digits, modulus 89 checksum."""

    name = "ABN"
    pattern = re.compile(r"\d{11}")
    weights = (10, 1, 3, 5, 7, 9, 11, 13, 15, 17, 19)

    def is_valid(self, normalized: str) -> bool:
        if not super().is_valid(normalized):
            return False
        digits = [int(char) for char in normalized]
        digits[0] -= 1
        return sum(weight * digit for weight, digit in zip(self.weights, digits)) % 89 == 0


class GstValidator(VatIdValidator):
    """Singapore GST registration number (M-prefixed or UEN format)."""

    name = "GST"
    pattern = re.compile(r"M\d{8}[A-Z]|M[A-Z0-9]\d{7}[A-Z]|\d{8,9}[A-Z]|[TSR]\d{2}[A-Z]{2}\d{4}[A-Z]")


class QstValidator(VatIdValidator):
    """Quebec QST registration number, e.g. 1002092821TQ0001."""

    name = "QST"
    pattern = re.compile(r"\d{10}TQ\d{4}")


class MvaValidator(VatIdValidator):
    """Norwegian MVA number: organisation number with modulus 11 check digit."""

    name = "MVA"
    pattern = re.compile(r"(?:NO)?(\d{9})(?:MVA)?")
    weights = (3, 2, 7, 6, 5, 4, 3, 2)

    def is_valid(self, normalized: str) -> bool:
        match = self.pattern.fullmatch(normalized)
        if not match:
            return False
        digits = [int(char) for char in match.group(1)]
        remainder = sum(weight * digit for weight, digit in zip(self.weights, digits)) % 11
        check = 0 if remainder == 0 else 11 - remainder
        return check != 10 and check == digits[-1]


class KraPinValidator(VatIdValidator):
    """Kenya Revenue Authority PIN, e.g. P051234567X."""

    name = "KRA PIN"
    pattern = re.compile(r"[AP]\d{9}[A-Z]")


class TrnValidator(VatIdValidator):
    """Bahrain VAT account number (TRN): 15 digits."""

    name = "TRN"
    pattern = re.compile(r"\d{15}")


class OmanVatNumberValidator(VatIdValidator):
    name = "Oman VAT number"
    pattern = re.compile(r"OM\d{10}")


class FirsTinValidator(VatIdValidator):
    """Nigerian FIRS TIN: 8 digits plus a 4 digit suffix."""

    name = "FIRS TIN"
    pattern = re.compile(r"\d{12}")


class TraTinValidator(VatIdValidator):
    """Tanzania Revenue Authority TIN: 9 digits."""

    name = "TRA TIN"
    pattern = re.compile(r"\d{9}")


class TaxIdValidator(VatIdValidator):
    """Country-parameterized tax ID check for the non-EU VAT/GST countries."""

    name = "tax ID"
    country_patterns: Mapping[str, Pattern[str]] = {
        "AE": re.compile(r"\d{15}"),
        "CH": re.compile(r"CHE\d{9}(?:MWST|TVA|IVA)?"),
        "IN": re.compile(r"\d{2}[A-Z]{5}\d{4}[A-Z][1-9A-Z]Z[0-9A-Z]"),
        "IS": re.compile(r"\d{5,6}"),
        "JP": re.compile(r"T?\d{13}"),
        "NZ": re.compile(r"\d{8,9}"),
        "ZA": re.compile(r"4\d{9}"),
        "MX": re.compile(r"[A-Z&Ñ]{3,4}\d{6}[A-Z0-9]{3}"),
        "KR": re.compile(r"\d{10}"),
        "TR": re.compile(r"\d{10}"),
        "SA": re.compile(r"3\d{13}3"),
    }
    generic_pattern = re.compile(r"[A-Z0-9]{6,20}")

    def __init__(self, country: str) -> None:
        self.country = country.upper()

    def is_valid(self, normalized: str) -> bool:
        pattern = self.country_patterns.get(self.country, self.generic_pattern)
        return bool(pattern.fullmatch(normalized))

    def __repr__(self) -> str:
        return f"<TaxIdValidator country={self.country}>"


class VatValidator(VatIdValidator):
    """EU (and UK) VAT number, country prefix plus the national format."""

    name = "VAT"
    country_patterns: Mapping[str, Pattern[str]] = {
        "AT": re.compile(r"U\d{8}"),
        "BE": re.compile(r"[01]\d{9}"),
        "BG": re.compile(r"\d{9,10}"),
        "CY": re.compile(r"\d{8}[A-Z]"),
        "CZ": re.compile(r"\d{8,10}"),
        "DE": re.compile(r"\d{9}"),
        "DK": re.compile(r"\d{8}"),
        "EE": re.compile(r"\d{9}"),
        "EL": re.compile(r"\d{9}"),
        "ES": re.compile(r"[A-Z0-9]\d{7}[A-Z0-9]"),
        "FI": re.compile(r"\d{8}"),
        "FR": re.compile(r"[A-Z0-9]{2}\d{9}"),
        "GB": re.compile(r"\d{9}|\d{12}|GD\d{3}|HA\d{3}"),
        "HR": re.compile(r"\d{11}"),
        "HU": re.compile(r"\d{8}"),
        "IE": re.compile(r"\d{7}[A-Z]{1,2}|\d[A-Z+*]\d{5}[A-Z]"),
        "IT": re.compile(r"\d{11}"),
        "LT": re.compile(r"\d{9}|\d{12}"),
        "LU": re.compile(r"\d{8}"),
        "LV": re.compile(r"\d{11}"),
        "MT": re.compile(r"\d{8}"),
        "NL": re.compile(r"\d{9}B\d{2}"),
        "PL": re.compile(r"\d{10}"),
        "PT": re.compile(r"\d{9}"),
        "RO": re.compile(r"\d{2,10}"),
        "SE": re.compile(r"\d{10}01"),
        "SI": re.compile(r"\d{8}"),
        "SK": re.compile(r"\d{10}"),
        "XI": re.compile(r"\d{9}|\d{12}"),
    }

    def is_valid(self, normalized: str) -> bool:
        prefix, number = normalized[:2], normalized[2:]
        pattern = self.country_patterns.get(prefix)
        return bool(pattern and pattern.fullmatch(number))


class VatIdValidatorRegistry:
    """Maps a buyer's country (and Canadian province) to the validator for it."""

    def __init__(
        self,
        validators: Optional[Mapping[str, VatIdValidator]] = None,
        default: Optional[VatIdValidator] = None,
        quebec: Optional[VatIdValidator] = None,
        policy: TaxPolicy = DEFAULT_POLICY,
    ) -> None:
        self._validators: Dict[str, VatIdValidator] = {
            compliance.AUS: AbnValidator(),
            compliance.SGP: GstValidator(),
            compliance.NOR: MvaValidator(),
            compliance.KEN: KraPinValidator(),
            compliance.BHR: TrnValidator(),
            compliance.OMN: OmanVatNumberValidator(),
            compliance.NGA: FirsTinValidator(),
            compliance.TZA: TraTinValidator(),
        }
        self._validators.update(validators or {})
        self._quebec = quebec or QstValidator()
        self._default = default or VatValidator()
        self._policy = policy

    def register(self, country: str, validator: VatIdValidator) -> None:
        self._validators[country.upper()] = validator

    def validator_for(self, country: Optional[str], state: Optional[str] = None) -> VatIdValidator:
        country = (country or "").upper()
        if country == compliance.CAN and state == compliance.QUEBEC:
            return self._quebec
        if country in self._validators:
            return self._validators[country]
        if country in self._policy.all_products_countries or country in self._policy.tax_id_validation_countries:
            return TaxIdValidator(country)
        return self._default

    def check(self, tax_id: Optional[str], country: Optional[str], state: Optional[str] = None) -> VatIdCheck:
        """Validate ``tax_id`` for a buyer in ``country``/``state``.

        A blank ID is UNCHECKED. A validator that cannot reach a verdict
        yields UNCHECKED as well; the failure is logged.
        """
        if not tax_id or not tax_id.strip():
            return VatIdCheck.UNCHECKED
        validator = self.validator_for(country, state)
        try:
            result = validator.validate(tax_id)
        except VatIdValidationError as e:
            logger.warning("%r could not validate tax ID for %s: %s", validator, country, e)
            return VatIdCheck.UNCHECKED
        logger.debug("%r returned %s for %s", validator, result.value, country)
        return result
