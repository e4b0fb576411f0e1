"""Clients for the external services the tax engine consults."""

from .geoip import GEOLOCATION_ERRORS, GeoIpLocator
from .taxjar_api import TaxJarApi, TaxJarApiError, TaxJarClientError, TaxJarServerError
from .vat_validation import VatIdCheck, VatIdValidationError, VatIdValidator, VatIdValidatorRegistry

__all__ = [
    "GEOLOCATION_ERRORS",
    "GeoIpLocator",
    "TaxJarApi",
    "TaxJarApiError",
    "TaxJarClientError",
    "TaxJarServerError",
    "VatIdCheck",
    "VatIdValidationError",
    "VatIdValidator",
    "VatIdValidatorRegistry",
]
