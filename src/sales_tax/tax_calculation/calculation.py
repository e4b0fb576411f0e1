"""Result of a sales tax determination."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from .models import TaxRate, VatStatus
from ..policy import DEFAULT_POLICY, TaxPolicy


@dataclass(frozen=True)
class SalesTaxCalculation:
    """Immutable outcome of one ``SalesTaxCalculator.calculate()`` call.

    ``tax_cents`` keeps full decimal precision; rounding to the currency's
    minor unit is the caller's concern. Whenever ``tax_cents`` is positive the
    amount came either from ``tax_rate`` or from TaxJar (``used_taxjar``).
    """

    price_cents: int
    tax_cents: Decimal
    tax_rate: Optional[TaxRate] = None
    business_vat_status: Optional[VatStatus] = None
    used_taxjar: bool = False
    is_marketplace_facilitator: bool = False
    taxjar_info: Optional[Dict[str, Any]] = None
    is_quebec: bool = False
    policy: TaxPolicy = field(default=DEFAULT_POLICY, compare=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.price_cents, bool) or not isinstance(self.price_cents, int):
            raise ValueError("price_cents must be an integer")
        if self.price_cents < 0:
            raise ValueError("price_cents must be >= 0")
        if not isinstance(self.tax_cents, Decimal):
            object.__setattr__(self, "tax_cents", Decimal(str(self.tax_cents)))
        if self.tax_cents < 0:
            raise ValueError("tax_cents must be >= 0")

    @classmethod
    def zero_tax(cls, price_cents: int, policy: TaxPolicy = DEFAULT_POLICY) -> "SalesTaxCalculation":
        return cls(price_cents=price_cents, tax_cents=Decimal(0), policy=policy)

    @classmethod
    def zero_business_vat(cls, price_cents: int, policy: TaxPolicy = DEFAULT_POLICY) -> "SalesTaxCalculation":
        """No tax: the buyer is a registered business and self-assesses (reverse charge)."""
        return cls(
            price_cents=price_cents,
            tax_cents=Decimal(0),
            business_vat_status=VatStatus.VALID,
            policy=policy,
        )

    @property
    def has_vat_id_input(self) -> bool:
        """Whether the buyer could have entered a VAT/GST/QST ID for this sale."""
        if self.is_quebec:
            return True
        if self.tax_rate is None:
            return False
        return self.tax_rate.country in self.policy.vat_id_input_countries

    @property
    def tax_label(self) -> Optional[str]:
        """Receipt label, e.g. ``VAT (22%)``, ``GST (10%)`` or ``Sales tax``."""
        rate = self.tax_rate
        if rate is None:
            return "Sales tax" if self.used_taxjar and self.tax_cents > 0 else None

        percent = int(rate.combined_rate * 100)
        vat_countries = (
            self.policy.eu_vat_countries
            | self.policy.norway_vat_countries
            | self.policy.all_products_countries
            | self.policy.digital_products_countries
        )
        if rate.country in vat_countries:
            return f"VAT ({percent}%)"
        if rate.country in self.policy.gst_countries:
            return f"GST ({percent}%)"
        return "Sales tax"

    def to_summary(self) -> Dict[str, Any]:
        return {
            "price_cents": self.price_cents,
            "tax_cents": self.tax_cents,
            "business_vat_status": self.business_vat_status.value if self.business_vat_status else None,
            "has_vat_id_input": self.has_vat_id_input,
        }

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation used by the CLI."""
        rate = self.tax_rate
        result = self.to_summary()
        result["tax_cents"] = str(self.tax_cents)
        result.update({
            "tax_label": self.tax_label,
            "tax_rate": None if rate is None else {
                "id": rate.id,
                "country": rate.country,
                "state": rate.state,
                "combined_rate": str(rate.combined_rate),
                "is_epublication_rate": rate.is_epublication_rate,
                "user_id": rate.user_id,
            },
            "used_taxjar": self.used_taxjar,
            "is_marketplace_facilitator": self.is_marketplace_facilitator,
            "taxjar_info": self.taxjar_info,
            "is_quebec": self.is_quebec,
        })
        return result
