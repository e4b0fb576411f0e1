"""Tax collection policy: country-code sets and feature flags read at decision time."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, Optional

from . import compliance
from .utils.config import Config


@dataclass(frozen=True)
class TaxPolicy:
    """Snapshot of the process-wide tax configuration.

    The calculator receives one of these instead of reading global state, so a
    test (or a caller replaying an old purchase) can pin the exact country sets
    and feature flags in force.
    """

    eu_vat_countries: FrozenSet[str] = compliance.EU_VAT_APPLICABLE_COUNTRY_CODES
    gst_countries: FrozenSet[str] = compliance.GST_APPLICABLE_COUNTRY_CODES
    norway_vat_countries: FrozenSet[str] = compliance.NORWAY_VAT_APPLICABLE_COUNTRY_CODES
    all_products_countries: FrozenSet[str] = compliance.COUNTRIES_THAT_COLLECT_TAX_ON_ALL_PRODUCTS
    digital_products_countries: FrozenSet[str] = compliance.COUNTRIES_THAT_COLLECT_TAX_ON_DIGITAL_PRODUCTS
    tax_id_validation_countries: FrozenSet[str] = (
        compliance.COUNTRIES_THAT_COLLECT_TAX_ON_DIGITAL_PRODUCTS_WITH_TAX_ID_PRO_VALIDATION
    )
    special_epublication_countries: FrozenSet[str] = compliance.SPECIAL_EPUBLICATION_COUNTRY_CODES
    taxable_us_states: FrozenSet[str] = compliance.TAXABLE_US_STATE_CODES
    vat_exempt_regions: FrozenSet[str] = compliance.VAT_EXEMPT_REGIONS
    active_features: FrozenSet[str] = frozenset()
    origin_address: Dict[str, str] = field(
        default_factory=lambda: dict(compliance.PLATFORM_ORIGIN_ADDRESS), compare=False
    )

    @classmethod
    def from_config(cls, config: Config) -> "TaxPolicy":
        """Build a policy from ``ACTIVE_FEATURES`` and ``TAXABLE_US_STATES``."""
        overrides = {"active_features": frozenset(config.get("active_features") or ())}
        states = config.get("taxable_us_states")
        if states:
            overrides["taxable_us_states"] = frozenset(state.upper() for state in states)
        return cls(**overrides)

    def with_features(self, *flags: str) -> "TaxPolicy":
        """Copy of this policy with additional feature flags switched on."""
        return replace(self, active_features=self.active_features | frozenset(flags))

    def is_feature_active(self, flag: str) -> bool:
        return flag in self.active_features

    def collects_tax_in(self, country_code: str) -> bool:
        """Whether the ``collect_tax_<cc>`` flag for ``country_code`` is on."""
        return self.is_feature_active(compliance.feature_flag_for(country_code))

    def is_taxable_us_state(self, state: Optional[str]) -> bool:
        return bool(state) and state in self.taxable_us_states

    @property
    def vat_id_input_countries(self) -> FrozenSet[str]:
        """Countries where a buyer may enter a VAT/GST/tax ID."""
        return _union(
            self.eu_vat_countries,
            self.gst_countries,
            self.norway_vat_countries,
            self.all_products_countries,
            self.digital_products_countries,
        )


def _union(*sets: Iterable[str]) -> FrozenSet[str]:
    merged: FrozenSet[str] = frozenset()
    for codes in sets:
        merged = merged | frozenset(codes)
    return merged


DEFAULT_POLICY = TaxPolicy()
