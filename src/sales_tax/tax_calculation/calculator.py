"""Sales tax / VAT determination for a single purchase."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .. import compliance
from ..integrations.geoip import GEOLOCATION_ERRORS
from ..integrations.taxjar_api import TAXJAR_ERRORS
from ..integrations.vat_validation import VatIdCheck, VatIdValidatorRegistry
from ..policy import DEFAULT_POLICY, TaxPolicy
from ..us_zip_codes import identify_state_code
from ..utils.logging import get_logger
from .calculation import SalesTaxCalculation
from .errors import SalesTaxCalculatorValidationError
from .models import BuyerLocation, Product, TaxRate, VatStatus

logger = get_logger(__name__)

TAXJAR_BREAKDOWN_KEYS = (
    "state_tax_rate",
    "county_tax_rate",
    "city_tax_rate",
    "gst_tax_rate",
    "pst_tax_rate",
    "qst_tax_rate",
)
TAXJAR_JURISDICTION_KEYS = ("state", "county", "city")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _get(data: Any, key: str) -> Any:
    if data is None:
        return None
    if isinstance(data, Mapping):
        return data.get(key)
    return getattr(data, key, None)


class SalesTaxCalculator:
    """Decide whether and how much tax to charge on one purchase.

    Sources are tried cheapest and most authoritative first: free and exempt
    sales, a verified business tax ID, TaxJar for US/Canadian nexus
    jurisdictions, and finally the local rate lookup table.

    A calculator is single-use and request-scoped; the derived location fields
    are fixed at construction.
    """

    def __init__(
        self,
        product: Product,
        price_cents: int,
        buyer_location: Union[BuyerLocation, Mapping[str, Any]],
        shipping_cents: int = 0,
        quantity: int = 1,
        buyer_vat_id: Optional[str] = None,
        *,
        policy: TaxPolicy = DEFAULT_POLICY,
        rate_store: Any = None,
        tax_api: Any = None,
        geolocator: Any = None,
        vat_validators: Optional[VatIdValidatorRegistry] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.product = product
        self.price_cents = price_cents
        self.shipping_cents = shipping_cents
        self.quantity = quantity
        self.buyer_vat_id = buyer_vat_id
        self.policy = policy
        self.rate_store = rate_store
        self.tax_api = tax_api
        self.geolocator = geolocator
        self.vat_validators = vat_validators or VatIdValidatorRegistry(policy=policy)
        self.clock = clock
        self.tax_rate: Optional[TaxRate] = None

        self._validate(buyer_location)
        if isinstance(buyer_location, BuyerLocation):
            self.buyer_location = buyer_location
        else:
            self.buyer_location = BuyerLocation.from_mapping(buyer_location)

        country = self.buyer_location.country
        if country == compliance.USA:
            self.state = identify_state_code(self.buyer_location.postal_code)
        elif country == compliance.CAN:
            self.state = self.buyer_location.state
        else:
            self.state = None

        self.is_us_taxable_state = country == compliance.USA and self.policy.is_taxable_us_state(self.state)
        self.is_ca_taxable = country == compliance.CAN and bool(self.state)
        self.is_quebec = self.is_ca_taxable and self.state == compliance.QUEBEC

    def _validate(self, buyer_location: Any) -> None:
        if isinstance(self.price_cents, bool) or not isinstance(self.price_cents, int):
            raise SalesTaxCalculatorValidationError("Price (cents) should be an Integer")
        if self.price_cents < 0:
            raise SalesTaxCalculatorValidationError("Price (cents) should not be negative")
        if isinstance(self.shipping_cents, bool) or not isinstance(self.shipping_cents, int) or self.shipping_cents < 0:
            raise SalesTaxCalculatorValidationError("Shipping (cents) should be a non-negative Integer")
        if not isinstance(buyer_location, (BuyerLocation, Mapping)):
            raise SalesTaxCalculatorValidationError("Buyer Location should be a Hash")
        if not isinstance(self.product, Product):
            raise SalesTaxCalculatorValidationError("Product should be a Product instance")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise SalesTaxCalculatorValidationError("Quantity should be a positive Integer")

    def calculate(self) -> SalesTaxCalculation:
        strategies = (
            self._free_transaction,
            self._exempt_seller,
            self._business_vat_exemption,
            self._calculate_with_taxjar,
            self._calculate_with_lookup_table,
        )
        for strategy in strategies:
            calculation = strategy()
            if calculation is not None:
                logger.debug("%s decided tax for %s: %s", strategy.__name__, self.buyer_location.country, calculation.tax_cents)
                return calculation
        return self._zero_tax()

    def _zero_tax(self) -> SalesTaxCalculation:
        return SalesTaxCalculation.zero_tax(self.price_cents, policy=self.policy)

    @property
    def _vat_status(self) -> Optional[VatStatus]:
        # Reaching a taxed outcome means a supplied ID did not validate.
        return VatStatus.INVALID if self.buyer_vat_id else None

    def _free_transaction(self) -> Optional[SalesTaxCalculation]:
        if self.price_cents == 0:
            return self._zero_tax()
        return None

    def _exempt_seller(self) -> Optional[SalesTaxCalculation]:
        if self.product.seller.has_brazilian_connect_account:
            return self._zero_tax()
        return None

    def _business_vat_exemption(self) -> Optional[SalesTaxCalculation]:
        if self.is_vat_id_valid():
            return SalesTaxCalculation.zero_business_vat(self.price_cents, policy=self.policy)
        return None

    def is_vat_id_valid(self) -> bool:
        check = self.vat_validators.check(self.buyer_vat_id, self.buyer_location.country, self.state)
        return check is VatIdCheck.VALID

    def _calculate_with_taxjar(self) -> Optional[SalesTaxCalculation]:
        if not (self.is_us_taxable_state or self.is_ca_taxable):
            return None
        if self.tax_api is None:
            logger.debug("No TaxJar client configured, using the lookup table")
            return None

        country = self.buyer_location.country
        destination: Dict[str, Any] = {"country": country, "state": self.state}
        if country == compliance.USA:
            destination["zip"] = self.buyer_location.postal_code
        nexus_address = {"country": country, "state": self.state}

        try:
            response = self.tax_api.calculate_tax_for_order(
                origin=dict(self.policy.origin_address),
                destination=destination,
                nexus_address=nexus_address,
                quantity=self.quantity,
                product_tax_code=self.product.tax_code,
                unit_price_dollars=self.price_cents / 100.0 / self.quantity,
                shipping_dollars=self.shipping_cents / 100.0,
            )
        except TAXJAR_ERRORS as e:
            logger.warning("TaxJar unavailable for %s/%s, falling back to lookup table: %s", country, self.state, e)
            return None

        breakdown = _get(response, "breakdown")
        jurisdictions = _get(response, "jurisdictions")
        taxjar_info: Dict[str, Any] = {"combined_tax_rate": _get(response, "rate")}
        for key in TAXJAR_BREAKDOWN_KEYS:
            taxjar_info[key] = _get(breakdown, key)
        for key in TAXJAR_JURISDICTION_KEYS:
            taxjar_info[f"jurisdiction_{key}"] = _get(jurisdictions, key)

        amount_to_collect = Decimal(str(_get(response, "amount_to_collect") or 0))
        tax_cents = (amount_to_collect * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)

        return SalesTaxCalculation(
            price_cents=self.price_cents,
            tax_cents=tax_cents,
            tax_rate=None,
            business_vat_status=self._vat_status,
            used_taxjar=True,
            is_marketplace_facilitator=self.is_us_taxable_state or self.is_ca_taxable,
            taxjar_info=taxjar_info,
            is_quebec=self.is_quebec,
            policy=self.policy,
        )

    def _calculate_with_lookup_table(self) -> Optional[SalesTaxCalculation]:
        self.tax_rate = self._resolve_tax_rate()
        if self.tax_rate is None:
            return None
        if not self.is_tax_eligible(self.tax_rate):
            logger.debug("Rate %s is not actionable for this product", self.tax_rate.id)
            return None

        return SalesTaxCalculation(
            price_cents=self.price_cents,
            tax_cents=self.price_cents * self.tax_rate.combined_rate,
            tax_rate=self.tax_rate,
            business_vat_status=self._vat_status,
            is_quebec=self.is_quebec,
            policy=self.policy,
        )

    def _resolve_tax_rate(self) -> Optional[TaxRate]:
        country = self.buyer_location.country
        if not country or self.rate_store is None:
            return None

        rate = self._lookup_rate(country)
        if rate is None:
            return None
        if self.is_vat_exempt(rate):
            logger.info("Buyer is in a VAT-exempt territory of %s, discarding rate %s", rate.country, rate.id)
            return None
        return rate

    def _lookup_rate(self, country: str) -> Optional[TaxRate]:
        policy = self.policy
        epublication = self.product.is_epublication

        if self.is_us_taxable_state:
            return self._first(country, state=self.state, is_epublication_rate=False)
        if country in policy.eu_vat_countries:
            return self._first(country, is_epublication_rate=epublication)
        if country == compliance.AUS:
            return self._first(country, is_epublication_rate=False)
        if country == compliance.SGP:
            return self._singapore_rate()
        if country == compliance.NOR:
            return self._first(country, is_epublication_rate=epublication)
        if country == compliance.CAN:
            if not self.state:
                return None
            return self._first(country, state=self.state, is_epublication_rate=False)

        if not policy.collects_tax_in(country):
            return None
        if country not in policy.all_products_countries and country not in policy.digital_products_countries:
            return None
        if country in policy.special_epublication_countries:
            return self._first(country, is_epublication_rate=epublication)
        return self._first(country)

    def _first(self, country: str, **filters: Any) -> Optional[TaxRate]:
        rates = self.rate_store.find_rates(country, **filters)
        return rates[0] if rates else None

    def _singapore_rate(self) -> Optional[TaxRate]:
        """The rate for the current year, else the one with the latest applicable year."""
        rates: List[TaxRate] = self.rate_store.find_rates(compliance.SGP, is_epublication_rate=False)
        if not rates:
            return None
        current_year = self.clock().year
        for rate in rates:
            if current_year in rate.applicable_years:
                return rate
        latest = rates[0]
        for rate in rates[1:]:
            if rate.latest_applicable_year >= latest.latest_applicable_year:
                latest = rate
        return latest

    def is_vat_exempt(self, rate: TaxRate) -> bool:
        """Canary Islands purchases fall outside the Spanish VAT area."""
        if rate.country not in self.policy.eu_vat_countries or rate.country != compliance.ESP:
            return False
        ip_address = self.buyer_location.ip_address
        if not ip_address or self.geolocator is None:
            return False

        try:
            geocode = self.geolocator.city(ip_address)
        except GEOLOCATION_ERRORS as e:
            logger.warning("Could not geolocate %s: %s", ip_address, e)
            return False

        if geocode.country.iso_code != compliance.ESP:
            return False
        return any(subdivision.name in self.policy.vat_exempt_regions for subdivision in geocode.subdivisions)

    def is_tax_eligible(self, rate: TaxRate) -> bool:
        """Whether a resolved rate actually applies to this product and buyer."""
        policy = self.policy
        country = rate.country
        is_physical = self.product.is_physical

        if is_physical and country == compliance.USA:
            return True
        if country in policy.eu_vat_countries:
            return True
        if country in (compliance.AUS, compliance.SGP, compliance.NOR):
            return True
        if country in policy.all_products_countries and policy.collects_tax_in(country):
            return True
        if country in policy.digital_products_countries and not is_physical and policy.collects_tax_in(country):
            return True
        if self.is_us_taxable_state or self.is_ca_taxable:
            return True
        return rate.user_id is not None
