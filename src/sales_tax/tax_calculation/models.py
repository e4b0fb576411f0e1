"""Entities the tax engine reads: sellers, products, buyer locations and tax rates."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional

NATIVE_TYPES_TO_TAX_CODE: Dict[str, Optional[str]] = {
    "digital": "31000",
    "course": "86132000A0002",
    "ebook": "31000",
    "newsletter": "55111516A0310",
    "membership": "55111516A0310",
    "podcast": "55111516A0310",
    "audiobook": "31000",
    "physical": None,
    "bundle": "55111500A9220",
    "commission": None,
    "call": None,
    "coffee": None,
}


class VatStatus(str, Enum):
    """Outcome of a buyer-supplied business VAT/tax ID."""

    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True)
class Seller:
    id: Optional[str] = None
    # Sales through a Brazilian Stripe Connect account are taxed by the seller.
    has_brazilian_connect_account: bool = False


@dataclass(frozen=True)
class Product:
    id: Optional[str] = None
    native_type: str = "digital"
    is_physical: bool = False
    is_epublication: bool = False
    seller: Seller = field(default_factory=Seller)

    @property
    def tax_code(self) -> Optional[str]:
        """TaxJar product tax code for the product's native type."""
        return NATIVE_TYPES_TO_TAX_CODE.get(self.native_type)


@dataclass(frozen=True)
class BuyerLocation:
    country: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    ip_address: Optional[str] = None

    @classmethod
    def from_mapping(cls, location: Mapping[str, Any]) -> "BuyerLocation":
        country = location.get("country")
        return cls(
            country=country.upper() if isinstance(country, str) and country else None,
            state=location.get("state") or None,
            postal_code=location.get("postal_code") or None,
            ip_address=location.get("ip_address") or None,
        )


@dataclass(frozen=True)
class TaxRate:
    """A row of the jurisdiction rate lookup table."""

    country: str
    combined_rate: Decimal
    id: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    is_seller_responsible: bool = False
    is_epublication_rate: bool = False
    applicable_years: FrozenSet[int] = frozenset()
    user_id: Optional[str] = None
    alive: bool = True
    created_at: Optional[datetime] = None

    @property
    def latest_applicable_year(self) -> int:
        return max(self.applicable_years, default=0)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "TaxRate":
        """Build a rate from a MongoDB document."""
        raw_id = document.get("_id", document.get("id"))
        return cls(
            id=str(raw_id) if raw_id is not None else None,
            country=document["country"],
            state=document.get("state"),
            zip_code=document.get("zip_code"),
            combined_rate=Decimal(str(document["combined_rate"])),
            is_seller_responsible=bool(document.get("is_seller_responsible", False)),
            is_epublication_rate=bool(document.get("is_epublication_rate", False)),
            applicable_years=frozenset(int(year) for year in document.get("applicable_years") or ()),
            user_id=document.get("user_id"),
            alive=document.get("deleted_at") is None,
            created_at=document.get("created_at"),
        )

    def to_document(self) -> Dict[str, Any]:
        """Serialize for MongoDB. Soft-deleted rates keep a ``deleted_at`` stamp."""
        document: Dict[str, Any] = {
            "country": self.country,
            "state": self.state,
            "zip_code": self.zip_code,
            "combined_rate": str(self.combined_rate),
            "is_seller_responsible": self.is_seller_responsible,
            "is_epublication_rate": self.is_epublication_rate,
            "applicable_years": sorted(self.applicable_years),
            "user_id": self.user_id,
            "deleted_at": None if self.alive else (self.created_at or datetime.now(timezone.utc)),
            "created_at": self.created_at or datetime.now(timezone.utc),
        }
        if self.id is not None:
            document["_id"] = self.id
        return document
