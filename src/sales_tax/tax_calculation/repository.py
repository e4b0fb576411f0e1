"""Tax rate lookup table: MongoDB repository and an in-memory equivalent."""

from __future__ import annotations

import os
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ASCENDING, MongoClient

from ..utils.config import Config
from ..utils.logging import get_logger
from .models import TaxRate

logger = get_logger(__name__)


def _rate_filter(
    country: str,
    state: Optional[str] = None,
    is_epublication_rate: Optional[bool] = None,
    user_id: Optional[str] = None,
    include_seller_responsible: bool = False,
    include_deleted: bool = False,
) -> Dict[str, Any]:
    query: Dict[str, Any] = {"country": country}
    if state is not None:
        query["state"] = state
    if is_epublication_rate is not None:
        query["is_epublication_rate"] = is_epublication_rate
    if user_id is not None:
        query["user_id"] = user_id
    if not include_seller_responsible:
        query["is_seller_responsible"] = False
    if not include_deleted:
        query["deleted_at"] = None
    return query


class TaxRateRepository:
    """Reads and loads ``TaxRate`` rows stored in a MongoDB collection."""

    def __init__(self, url: Optional[str] = None, db_name: Optional[str] = None, collection: Optional[str] = None, connection_url_env_key: Optional[str] = None, config: Optional[Config] = None) -> None:
        config = config or Config(".env")

        if connection_url_env_key:
            self._url = os.getenv(connection_url_env_key) or config.get("mongo_url")
        else:
            self._url = url or config.get("mongo_url")

        self._db = db_name or config.get("mongo_db")
        self._collection = collection or config.get("mongo_collection")
        if not self._url:
            raise ValueError("DB_CONNECTION_URL is required")
        self._client: Optional[MongoClient] = None

    def __enter__(self) -> "TaxRateRepository":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def connect(self) -> None:
        if self._client is None:
            self._client = MongoClient(self._url, serverSelectionTimeoutMS=5000)

    def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _rates(self):
        if self._client is None:
            self.connect()
        return self._client[self._db][self._collection]

    def find_rates(
        self,
        country: str,
        state: Optional[str] = None,
        is_epublication_rate: Optional[bool] = None,
        user_id: Optional[str] = None,
        include_seller_responsible: bool = False,
        include_deleted: bool = False,
    ) -> List[TaxRate]:
        """Matching rates, oldest first. Live, platform-collected rates unless told otherwise."""
        query = _rate_filter(
            country,
            state=state,
            is_epublication_rate=is_epublication_rate,
            user_id=user_id,
            include_seller_responsible=include_seller_responsible,
            include_deleted=include_deleted,
        )
        logger.debug("Querying tax rates: %s", query)
        cursor = self._rates().find(query).sort([("created_at", ASCENDING), ("_id", ASCENDING)])
        return [TaxRate.from_document(document) for document in cursor]

    def insert_rates(self, rates: Iterable[TaxRate]) -> int:
        documents = [rate.to_document() for rate in rates]
        if not documents:
            return 0
        result = self._rates().insert_many(documents)
        logger.info("Inserted %d tax rates into %s.%s", len(result.inserted_ids), self._db, self._collection)
        return len(result.inserted_ids)


class InMemoryTaxRateStore:
    """Same query contract as ``TaxRateRepository``, over a list of rates."""

    def __init__(self, rates: Optional[Iterable[TaxRate]] = None) -> None:
        self._rates: List[TaxRate] = list(rates or [])

    def add(self, rate: TaxRate) -> TaxRate:
        self._rates.append(rate)
        return rate

    def insert_rates(self, rates: Iterable[TaxRate]) -> int:
        added = list(rates)
        self._rates.extend(added)
        return len(added)

    def find_rates(
        self,
        country: str,
        state: Optional[str] = None,
        is_epublication_rate: Optional[bool] = None,
        user_id: Optional[str] = None,
        include_seller_responsible: bool = False,
        include_deleted: bool = False,
    ) -> List[TaxRate]:
        matches = [
            rate for rate in self._rates
            if rate.country == country
            and (state is None or rate.state == state)
            and (is_epublication_rate is None or rate.is_epublication_rate == is_epublication_rate)
            and (user_id is None or rate.user_id == user_id)
            and (include_seller_responsible or not rate.is_seller_responsible)
            and (include_deleted or rate.alive)
        ]
        # Stable sort keeps insertion order among rates without a timestamp.
        return sorted(matches, key=lambda rate: (rate.created_at is not None, rate.created_at or 0))
