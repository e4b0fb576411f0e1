"""Tests for ZIP code to state resolution."""

import pytest

from sales_tax.us_zip_codes import identify_state_code


@pytest.mark.parametrize(
    "postal_code, state",
    [
        ("78701", "TX"),
        ("94107", "CA"),
        ("98121", "WA"),
        ("20001", "DC"),
        ("02108", "MA"),
        ("96813", "HI"),
        ("10001-1234", "NY"),
        ("100011234", "NY"),
        (" 97201 ", "OR"),
    ],
)
def test_identify_state_code(postal_code, state):
    assert identify_state_code(postal_code) == state


@pytest.mark.parametrize("postal_code", [None, "", "invalidzip", "1234", "123456", "00000"])
def test_unresolvable(postal_code):
    assert identify_state_code(postal_code) is None
