"""High-level entry point wiring configuration to the tax calculator."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from ..integrations.geoip import GeoIpLocator
from ..integrations.taxjar_api import TaxJarApi
from ..integrations.vat_validation import VatIdCheck, VatIdValidatorRegistry
from ..policy import TaxPolicy
from ..utils.config import Config
from ..utils.logging import get_logger
from .calculation import SalesTaxCalculation
from .calculator import SalesTaxCalculator
from .models import BuyerLocation, Product
from .repository import TaxRateRepository

logger = get_logger(__name__)


class SalesTaxService:
    """Builds calculators with collaborators taken from ``Config``.

    TaxJar and GeoIP are optional: without an API key the US/Canada path goes
    straight to the lookup table, and without a GeoIP database no buyer is
    placed in a VAT-exempt territory.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        policy: Optional[TaxPolicy] = None,
        rate_store: Any = None,
        tax_api: Any = None,
        geolocator: Any = None,
        vat_validators: Optional[VatIdValidatorRegistry] = None,
    ) -> None:
        self.config = config or Config(".env")
        self.policy = policy or TaxPolicy.from_config(self.config)
        self._rate_store = rate_store
        self.tax_api = tax_api if tax_api is not None else self._build_tax_api()
        self.geolocator = geolocator if geolocator is not None else self._build_geolocator()
        self.vat_validators = vat_validators or VatIdValidatorRegistry(policy=self.policy)

    @property
    def rate_store(self) -> Any:
        """The lookup table; a MongoDB repository unless one was injected."""
        if self._rate_store is None:
            self._rate_store = TaxRateRepository(config=self.config)
        return self._rate_store

    def _build_tax_api(self) -> Optional[TaxJarApi]:
        api_key = self.config.get("taxjar_api_key")
        if not api_key:
            logger.info("TAXJAR_API_KEY not set; US and Canadian rates come from the lookup table")
            return None
        return TaxJarApi(
            api_key=api_key,
            api_url=self.config.get("taxjar_api_url") or None,
            cache_ttl=self.config.get("taxjar_cache_ttl"),
            cache_size=self.config.get("taxjar_cache_size"),
        )

    def _build_geolocator(self) -> Optional[GeoIpLocator]:
        database = self.config.get("geoip_database")
        if not database:
            return None
        return GeoIpLocator(database)

    def calculator_for(
        self,
        product: Product,
        price_cents: int,
        buyer_location: Union[BuyerLocation, Mapping[str, Any]],
        shipping_cents: int = 0,
        quantity: int = 1,
        buyer_vat_id: Optional[str] = None,
    ) -> SalesTaxCalculator:
        return SalesTaxCalculator(
            product,
            price_cents,
            buyer_location,
            shipping_cents=shipping_cents,
            quantity=quantity,
            buyer_vat_id=buyer_vat_id,
            policy=self.policy,
            rate_store=self.rate_store,
            tax_api=self.tax_api,
            geolocator=self.geolocator,
            vat_validators=self.vat_validators,
        )

    def calculate(self, product: Product, price_cents: int, buyer_location: Union[BuyerLocation, Mapping[str, Any]], **kwargs: Any) -> SalesTaxCalculation:
        """Calculate tax for one purchase."""
        calculation = self.calculator_for(product, price_cents, buyer_location, **kwargs).calculate()
        logger.info(
            "Tax for %s cents to %s: %s cents (rate=%s, taxjar=%s)",
            price_cents,
            calculation.tax_rate.country if calculation.tax_rate else _country_of(buyer_location),
            calculation.tax_cents,
            calculation.tax_rate.id if calculation.tax_rate else None,
            calculation.used_taxjar,
        )
        return calculation

    def check_tax_id(self, tax_id: str, country: str, state: Optional[str] = None) -> VatIdCheck:
        return self.vat_validators.check(tax_id, country.upper(), state)

    def close(self) -> None:
        for resource in (self._rate_store, self.geolocator):
            closer = getattr(resource, "disconnect", None) or getattr(resource, "close", None)
            if closer is not None:
                closer()

    def __enter__(self) -> "SalesTaxService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _country_of(buyer_location: Union[BuyerLocation, Mapping[str, Any]]) -> Optional[str]:
    if isinstance(buyer_location, BuyerLocation):
        return buyer_location.country
    return buyer_location.get("country")
