"""
Command-line interface for the sales tax engine.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from . import __version__
from .tax_calculation.models import NATIVE_TYPES_TO_TAX_CODE, Product, Seller, TaxRate
from .tax_calculation.service import SalesTaxService
from .utils.config import Config
from .utils.logging import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="sales-tax",
        description="Sales Tax - sales tax and VAT determination for storefront purchases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sales-tax --version
  sales-tax calculate --price-cents 10000 --country US --postal-code 78701
  sales-tax calculate --price-cents 500 --country DE --vat-id DE123456789
  sales-tax validate-tax-id --country CA --state QC 1002092821TQ0001
  sales-tax list-rates --country SG
  sales-tax import-rates rates.json
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Sales Tax {__version__}",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "--log-file",
        help="Log file path",
    )

    parser.add_argument(
        "--env-file",
        default=".env",
        help="Environment file with database, TaxJar and feature flag settings (default: .env)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
    )

    calculate_parser = subparsers.add_parser(
        "calculate",
        help="Calculate sales tax / VAT for a purchase",
    )
    calculate_parser.add_argument("--price-cents", type=int, required=True, help="Price in cents")
    calculate_parser.add_argument("--country", required=True, help="Buyer country (ISO alpha-2)")
    calculate_parser.add_argument("--state", help="Buyer state or province (Canada)")
    calculate_parser.add_argument("--postal-code", help="Buyer postal code (US ZIP resolves the state)")
    calculate_parser.add_argument("--ip-address", help="Buyer IP address")
    calculate_parser.add_argument("--shipping-cents", type=int, default=0, help="Shipping cost in cents (default: 0)")
    calculate_parser.add_argument("--quantity", type=int, default=1, help="Quantity (default: 1)")
    calculate_parser.add_argument("--vat-id", help="Buyer business VAT / tax ID")
    calculate_parser.add_argument(
        "--native-type",
        choices=sorted(NATIVE_TYPES_TO_TAX_CODE),
        default="digital",
        help="Product type (default: digital)",
    )
    calculate_parser.add_argument("--physical", action="store_true", help="Product is physical")
    calculate_parser.add_argument("--epublication", action="store_true", help="Product is an e-publication")
    calculate_parser.add_argument(
        "--exempt-seller",
        action="store_true",
        help="Seller sells through a Brazilian Stripe Connect account",
    )
    calculate_parser.add_argument("--json", action="store_true", help="Print the calculation as JSON")

    validate_parser = subparsers.add_parser(
        "validate-tax-id",
        help="Validate a business VAT / tax ID for a country",
    )
    validate_parser.add_argument("tax_id", help="Tax ID to validate")
    validate_parser.add_argument("--country", required=True, help="Buyer country (ISO alpha-2)")
    validate_parser.add_argument("--state", help="Province, for Quebec QST numbers")

    list_parser = subparsers.add_parser(
        "list-rates",
        help="List live tax rates in the lookup table",
    )
    list_parser.add_argument("--country", required=True, help="Country (ISO alpha-2)")
    list_parser.add_argument("--state", help="State or province")
    list_parser.add_argument("--user-id", help="Only creator-specific rates for this user")
    list_parser.add_argument(
        "--include-seller-responsible",
        action="store_true",
        help="Include rates remitted by sellers",
    )

    import_parser = subparsers.add_parser(
        "import-rates",
        help="Load tax rates from a JSON file into the lookup table",
    )
    import_parser.add_argument("file", help="JSON file holding a list of rate documents")

    return parser


def print_box(rows: Sequence[Tuple[str, Any]]) -> None:
    """Print label/value rows inside a box."""
    label_width = max(len(lbl) for lbl, _ in rows)
    inner_width = max(len(f" {lbl.ljust(label_width)} : {val}") for lbl, val in rows)
    print("┌" + "─" * inner_width + "┐")
    for lbl, val in rows:
        line = f" {lbl.ljust(label_width)} : {val}"
        print(f"│{line + ' ' * (inner_width - len(line))}│")
    print("└" + "─" * inner_width + "┘")


def calculate_tax(service: SalesTaxService, args: argparse.Namespace) -> int:
    product = Product(
        native_type=args.native_type,
        is_physical=args.physical or args.native_type == "physical",
        is_epublication=args.epublication,
        seller=Seller(has_brazilian_connect_account=args.exempt_seller),
    )
    buyer_location = {
        "country": args.country,
        "state": args.state,
        "postal_code": args.postal_code,
        "ip_address": args.ip_address,
    }
    calculator = service.calculator_for(
        product,
        args.price_cents,
        buyer_location,
        shipping_cents=args.shipping_cents,
        quantity=args.quantity,
        buyer_vat_id=args.vat_id,
    )
    calculation = calculator.calculate()

    if args.json:
        print(json.dumps(calculation.to_dict(), indent=2, default=str))
        return 0

    rows: List[Tuple[str, Any]] = [
        ("Country", args.country.upper()),
        ("State", calculator.state or "-"),
        ("Price", f"{args.price_cents} cents"),
        ("Tax", f"{calculation.tax_cents} cents"),
        ("Label", calculation.tax_label or "-"),
        ("VAT status", calculation.business_vat_status.value if calculation.business_vat_status else "-"),
    ]
    if calculation.tax_rate is not None:
        rows.append(("Rate", f"{calculation.tax_rate.combined_rate} ({calculation.tax_rate.id or 'unsaved'})"))
    if calculation.used_taxjar:
        rows.append(("Source", "TaxJar"))
        rows.append(("Marketplace facilitator", "yes" if calculation.is_marketplace_facilitator else "no"))
    print_box(rows)
    return 0


def validate_tax_id(service: SalesTaxService, args: argparse.Namespace) -> int:
    result = service.check_tax_id(args.tax_id, args.country, args.state)
    validator = service.vat_validators.validator_for(args.country.upper(), args.state)
    print(f"{validator.name} {args.tax_id}: {result.value}")
    return 0 if result.value == "valid" else 2


def list_rates(service: SalesTaxService, args: argparse.Namespace) -> int:
    rates = service.rate_store.find_rates(
        args.country.upper(),
        state=args.state,
        user_id=args.user_id,
        include_seller_responsible=args.include_seller_responsible,
    )
    if not rates:
        print(f"No live tax rates for {args.country.upper()}")
        return 0
    header = f"{'ID':<26}{'Country':<9}{'State':<7}{'Rate':>10}  {'E-pub':<7}{'Years':<12}{'User':<10}"
    print(header)
    print("-" * len(header))
    for rate in rates:
        years = ",".join(str(year) for year in sorted(rate.applicable_years)) or "-"
        print(
            f"{str(rate.id or '-'):<26}{rate.country:<9}{rate.state or '-':<7}{str(rate.combined_rate):>10}  "
            f"{'yes' if rate.is_epublication_rate else 'no':<7}{years:<12}{rate.user_id or '-':<10}"
        )
    return 0


def import_rates(service: SalesTaxService, args: argparse.Namespace) -> int:
    documents = json.loads(Path(args.file).read_text())
    if not isinstance(documents, list):
        raise ValueError(f"{args.file} must contain a JSON list of rates")
    rates = [TaxRate.from_document(document) for document in documents]
    count = service.rate_store.insert_rates(rates)
    print(f"Imported {count} tax rates")
    return 0


COMMANDS = {
    "calculate": calculate_tax,
    "validate-tax-id": validate_tax_id,
    "list-rates": list_rates,
    "import-rates": import_rates,
}


def main(args: Optional[list] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    log_level = "DEBUG" if parsed_args.verbose else "INFO"
    logger = setup_logging(level=log_level, log_file=parsed_args.log_file)

    if not parsed_args.command:
        parser.print_help()
        return 1

    try:
        with SalesTaxService(config=Config(parsed_args.env_file)) as service:
            return COMMANDS[parsed_args.command](service, parsed_args)
    except Exception as e:
        logger.error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
