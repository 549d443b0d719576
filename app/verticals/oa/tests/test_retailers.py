import pytest

from app.verticals.oa.data_validators.retailers import brand_and_host, match_supplier, resolve_retailer
from app.verticals.oa.data_validators.sheets import column_map, pick, queued_weeks_by_asin, sheet_number

NAMES = ["Argos", "Currys PC World", "B&Q"]


@pytest.mark.parametrize(
    "link, brand, host",
    [
        ("https://www.argos.co.uk/product/1", "argos", "argos.co.uk"),
        ("http://shop.boots.com/item?id=2", "boots", "shop.boots.com"),
        ("www.diy.com", "diy", "diy.com"),
        ("localhost", "unknown", "localhost"),
    ],
)
def test_brand_and_host(link, brand, host):
    assert brand_and_host(link) == (brand, host)


def test_supplier_match_prefers_exact_then_containment():
    assert match_supplier("argos", "argos.co.uk", NAMES) == "Argos"
    assert match_supplier("currys", "currys.co.uk", NAMES) == "Currys PC World"
    assert match_supplier("bq", "bq.co.uk", NAMES) == "B&Q"
    assert match_supplier("wilko", "wilko.com", NAMES) is None


def test_plain_retailer_names_keep_their_own_label():
    retailer = resolve_retailer("Home Bargains", NAMES)
    assert retailer.supplier == "Home Bargains"
    assert retailer.key == "home bargains"

    url = resolve_retailer("https://www.wilko.com/p/1", NAMES)
    assert url.supplier == "wilko"
    assert url.label == "wilko"


def test_headers_win_over_positions():
    columns = column_map(["Title", "ASIN", "asin"])
    assert columns == {"title": 0, "asin": 1}
    assert pick(["Lamp", "B01"], columns, ("asin",), 0) == "B01"
    assert pick(["B01"], {}, ("asin",), 0) == "B01"
    assert pick([], {}, ("asin",), 3) == ""


def test_sheet_numbers_tolerate_text():
    assert str(sheet_number("£1,200")) == "1200"
    assert sheet_number("N/A") is None
    assert sheet_number("") is None


def test_queued_weeks_need_both_columns():
    assert queued_weeks_by_asin([["ASIN", "Queued"], ["B01", 2]]) == {}
    weeks = queued_weeks_by_asin([["asin", "Queued churn wks"], [" b01 ", "2"], ["", 5]])
    assert {k: str(v) for k, v in weeks.items()} == {"B01": "2"}
