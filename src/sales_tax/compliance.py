"""
Country and region constants used to decide where tax is collected.
"""

from typing import Dict, FrozenSet

USA = "US"
CAN = "CA"
AUS = "AU"
SGP = "SG"
NOR = "NO"
ESP = "ES"
KEN = "KE"
BHR = "BH"
OMN = "OM"
NGA = "NG"
TZA = "TZ"
ISL = "IS"
CHE = "CH"
MEX = "MX"

QUEBEC = "QC"

EU_VAT_APPLICABLE_COUNTRY_CODES: FrozenSet[str] = frozenset({
    "AT", "BE", "BG", "CY", "CZ", "DE", "DK", "EE", "ES", "FI", "FR", "GB", "GR", "HR",
    "HU", "IE", "IT", "LT", "LU", "LV", "MT", "NL", "PL", "PT", "RO", "SE", "SI", "SK",
})

GST_APPLICABLE_COUNTRY_CODES: FrozenSet[str] = frozenset({AUS, SGP})

NORWAY_VAT_APPLICABLE_COUNTRY_CODES: FrozenSet[str] = frozenset({NOR})

COUNTRIES_THAT_COLLECT_TAX_ON_ALL_PRODUCTS: FrozenSet[str] = frozenset({
    "AE", "CH", "IN", "IS", "JP", "NZ", "ZA",
})

COUNTRIES_THAT_COLLECT_TAX_ON_DIGITAL_PRODUCTS: FrozenSet[str] = frozenset({
    "BH", "BY", "CL", "CO", "CR", "EC", "EG", "GE", "KE", "KR", "KZ", "MA", "MD",
    "MX", "MY", "NG", "OM", "RS", "RU", "SA", "TH", "TR", "TZ", "UA", "UZ", "VN",
})

# Digital-products countries whose tax IDs go through the generic tax ID check.
# Bahrain, Kenya, Nigeria, Oman and Tanzania have dedicated validators.
COUNTRIES_THAT_COLLECT_TAX_ON_DIGITAL_PRODUCTS_WITH_TAX_ID_PRO_VALIDATION: FrozenSet[str] = (
    COUNTRIES_THAT_COLLECT_TAX_ON_DIGITAL_PRODUCTS - frozenset({BHR, KEN, NGA, OMN, TZA})
)

# Countries with a separate e-publication rate outside the EU and Norway.
SPECIAL_EPUBLICATION_COUNTRY_CODES: FrozenSet[str] = frozenset({ISL, CHE, MEX})

# States where the platform has nexus and acts as marketplace facilitator.
TAXABLE_US_STATE_CODES: FrozenSet[str] = frozenset({
    "AR", "AZ", "CO", "CT", "DC", "GA", "HI", "IA", "IL", "IN", "KS", "KY", "LA",
    "MA", "MD", "MI", "MN", "NC", "ND", "NE", "NJ", "NV", "NY", "OH", "OK", "PA",
    "RI", "SD", "TN", "TX", "UT", "VT", "WA", "WI", "WV", "WY",
})

# Subdivision names (as reported by GeoIP) of EU territories outside the VAT area.
VAT_EXEMPT_REGIONS: FrozenSet[str] = frozenset({"Canarias", "Canary Islands"})

PLATFORM_ORIGIN_ADDRESS: Dict[str, str] = {
    "country": USA,
    "state": "CA",
    "zip": "94104",
}


def feature_flag_for(country_code: str) -> str:
    """Name of the feature flag gating tax collection in ``country_code``."""
    return f"collect_tax_{country_code.lower()}"
