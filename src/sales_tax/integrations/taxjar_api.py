"""Thin wrapper around the TaxJar client used for US and Canadian tax rates."""

from __future__ import annotations

import json
import re
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import taxjar
from taxjar.exceptions import TaxJarConnectionError, TaxJarResponseError

from ..utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_TTL = 600
DEFAULT_CACHE_SIZE = 1024


class TaxJarApiError(Exception):
    """TaxJar did not return a usable answer."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TaxJarClientError(TaxJarApiError):
    """The request was rejected (4xx), e.g. an unknown destination."""


class TaxJarServerError(TaxJarApiError):
    """TaxJar failed or could not be reached (5xx, timeouts, connection errors)."""


TAXJAR_ERRORS = (TaxJarClientError, TaxJarServerError)


def _status_code(error: Exception) -> Optional[int]:
    full_response = getattr(error, "full_response", None)
    if isinstance(full_response, Mapping):
        status = full_response.get("status")
        if status is not None:
            try:
                return int(status)
            except (TypeError, ValueError):
                pass
    match = re.search(r"\b([45]\d\d)\b", str(error))
    return int(match.group(1)) if match else None


def _as_dict(response: Any) -> Dict[str, Any]:
    """TaxJar returns typed objects; the engine works with plain dicts."""
    if isinstance(response, Mapping):
        return dict(response)
    if hasattr(response, "to_json"):
        return response.to_json()
    return dict(vars(response))


class TaxJarApi:
    """Calculates order tax with TaxJar and caches identical requests for a while."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        client: Any = None,
        cache_ttl: int = DEFAULT_CACHE_TTL,
        cache_size: int = DEFAULT_CACHE_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if client is None:
            if not api_key:
                raise ValueError("TAXJAR_API_KEY is required")
            client = taxjar.Client(api_key=api_key, api_url=api_url) if api_url else taxjar.Client(api_key=api_key)
        self._client = client
        self._cache_ttl = cache_ttl
        self._clock = clock
        self._cache_size = cache_size
        # Insertion order is expiry order: every entry gets the same TTL.
        self._cache: "OrderedDict[str, Tuple[float, Dict[str, Any]]]" = OrderedDict()

    def calculate_tax_for_order(
        self,
        *,
        origin: Mapping[str, Any],
        destination: Mapping[str, Any],
        nexus_address: Mapping[str, Any],
        quantity: int,
        product_tax_code: Optional[str],
        unit_price_dollars: float,
        shipping_dollars: float,
    ) -> Dict[str, Any]:
        """Return TaxJar's tax calculation for a single-line order.

        Raises:
            TaxJarClientError: TaxJar rejected the request.
            TaxJarServerError: TaxJar failed or was unreachable.
        """
        line_item: Dict[str, Any] = {
            "id": "1",
            "quantity": quantity,
            "unit_price": unit_price_dollars,
        }
        if product_tax_code:
            line_item["product_tax_code"] = product_tax_code

        params: Dict[str, Any] = {
            "from_country": origin.get("country"),
            "from_state": origin.get("state"),
            "from_zip": origin.get("zip"),
            "to_country": destination.get("country"),
            "to_state": destination.get("state"),
            "shipping": shipping_dollars,
            "nexus_addresses": [dict(nexus_address)],
            "line_items": [line_item],
        }
        if destination.get("zip"):
            params["to_zip"] = destination["zip"]

        cache_key = json.dumps(params, sort_keys=True, default=str)
        cached = self._cache.get(cache_key)
        if cached is not None and cached[0] > self._clock():
            logger.debug("TaxJar cache hit for %s", cache_key)
            return cached[1]

        response = _as_dict(self._call("tax_for_order", params))
        self._store(cache_key, response)
        return response

    def _store(self, cache_key: str, response: Dict[str, Any]) -> None:
        now = self._clock()
        while self._cache:
            oldest_key, (expires_at, _) = next(iter(self._cache.items()))
            if expires_at > now:
                break
            del self._cache[oldest_key]
        self._cache.pop(cache_key, None)
        self._cache[cache_key] = (now + self._cache_ttl, response)
        while len(self._cache) > self._cache_size:
            self._cache.popitem(last=False)

    def create_order_transaction(
        self,
        *,
        transaction_id: str,
        transaction_date: str,
        destination: Mapping[str, Any],
        quantity: int,
        product_tax_code: Optional[str],
        amount_dollars: float,
        shipping_dollars: float,
        sales_tax_dollars: float,
        unit_price_dollars: float,
        origin: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Report a completed sale to TaxJar for filing."""
        origin = origin or {}
        params: Dict[str, Any] = {
            "transaction_id": transaction_id,
            "transaction_date": transaction_date,
            "from_country": origin.get("country"),
            "from_state": origin.get("state"),
            "from_zip": origin.get("zip"),
            "to_country": destination.get("country"),
            "to_state": destination.get("state"),
            "to_zip": destination.get("zip"),
            "amount": amount_dollars,
            "shipping": shipping_dollars,
            "sales_tax": sales_tax_dollars,
            "line_items": [{
                "quantity": quantity,
                "product_tax_code": product_tax_code,
                "unit_price": unit_price_dollars,
                "sales_tax": sales_tax_dollars,
            }],
        }
        params = {key: value for key, value in params.items() if value is not None}
        return _as_dict(self._call("create_order", params))

    def _call(self, method: str, params: Dict[str, Any]) -> Any:
        try:
            return getattr(self._client, method)(params)
        except TaxJarConnectionError as e:
            logger.warning("TaxJar %s connection failure: %s", method, e)
            raise TaxJarServerError(str(e)) from e
        except TaxJarResponseError as e:
            status = _status_code(e)
            if status is not None and status >= 500:
                logger.warning("TaxJar %s server error (%s): %s", method, status, e)
                raise TaxJarServerError(str(e), status_code=status) from e
            logger.error("TaxJar %s rejected request (%s): %s", method, status, e)
            raise TaxJarClientError(str(e), status_code=status) from e
