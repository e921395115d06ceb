"""
Unit tests for request parsing helpers.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from werkzeug.datastructures import MultiDict

from backoffice.errors import ValidationError
from backoffice.services.return_service import compute_return_totals, parse_return_items
from backoffice.time_utils import parse_iso_datetime, to_utc_z
from backoffice.validation import (
    parse_choice,
    parse_int,
    parse_money,
    parse_page_request,
    parse_uuid,
)

PRODUCT_ID = "3f6c8a52-6a2e-4c47-9a59-4fb0b1a5a001"


class TestScalars:

    @pytest.mark.parametrize("value", [True, 1.5, "1e3", "12.5", "", None, [1]])
    def test_parse_int_rejects(self, value):
        with pytest.raises(ValidationError):
            parse_int(value, "qty")

    def test_parse_int_accepts_integral_values(self):
        assert parse_int(3, "qty") == 3
        assert parse_int(4.0, "qty") == 4
        assert parse_int(" 12 ", "qty") == 12

    def test_parse_int_minimum(self):
        with pytest.raises(ValidationError):
            parse_int(0, "qty", minimum=1)

    def test_parse_money(self):
        assert parse_money(10, "price") == Decimal("10.00")
        assert parse_money("2.005", "price") == Decimal("2.01")
        with pytest.raises(ValidationError):
            parse_money(-1, "price")
        with pytest.raises(ValidationError):
            parse_money("NaN", "price")
        with pytest.raises(ValidationError):
            parse_money(0, "amount", allow_zero=False)

    def test_parse_uuid_normalises_case(self):
        assert parse_uuid(PRODUCT_ID.upper(), "id") == PRODUCT_ID
        assert parse_uuid(None, "id", required=False) is None
        with pytest.raises(ValidationError):
            parse_uuid("abc", "id")

    def test_parse_choice_uppercases(self):
        assert parse_choice("completed", "status", {"COMPLETED"}) == "COMPLETED"
        with pytest.raises(ValidationError):
            parse_choice("open", "status", {"COMPLETED"})


class TestReturnLines:

    def test_totals(self):
        items = parse_return_items([
            {'productId': PRODUCT_ID, 'qty': 2, 'price': 10},
            {'productId': PRODUCT_ID, 'qty': 1, 'price': 5},
        ])
        totals = compute_return_totals(items)

        assert [item['total'] for item in items] == [Decimal("20.00"), Decimal("5.00")]
        assert totals.subtotal == Decimal("25.00")
        assert totals.tax_amount == Decimal("0.00")
        assert totals.total == Decimal("25.00")

    @pytest.mark.parametrize("items", [
        None,
        [],
        ["not-an-object"],
        [{'productId': PRODUCT_ID, 'qty': 0, 'price': 1}],
        [{'productId': PRODUCT_ID, 'qty': 1}],
    ])
    def test_rejects_bad_lines(self, items):
        with pytest.raises(ValidationError):
            parse_return_items(items)


class TestPageRequest:

    SORTABLE = {'createdAt': object(), 'total': object()}

    def test_defaults(self, app):
        with app.test_request_context():
            page = parse_page_request(MultiDict(), sortable=self.SORTABLE)
        assert (page.page, page.limit, page.sort_by, page.sort_order) == (1, 10, 'createdAt', 'desc')
        assert page.offset == 0

    def test_offset(self, app):
        with app.test_request_context():
            page = parse_page_request(MultiDict({'page': '3', 'limit': '20', 'sortOrder': 'ASC'}),
                                      sortable=self.SORTABLE)
        assert page.offset == 40
        assert page.sort_order == 'asc'

    @pytest.mark.parametrize("args", [
        {'limit': '101'},
        {'page': '0'},
        {'sortBy': 'password'},
        {'sortOrder': 'sideways'},
    ])
    def test_rejects(self, app, args):
        with app.test_request_context():
            with pytest.raises(ValidationError):
                parse_page_request(MultiDict(args), sortable=self.SORTABLE)


class TestTimestamps:

    def test_bare_date_bounds(self):
        assert parse_iso_datetime("2024-03-01") == datetime(2024, 3, 1)
        assert parse_iso_datetime("2024-03-01", end_of_day=True) == datetime(2024, 3, 1, 23, 59, 59, 999999)

    def test_offsets_normalised_to_naive_utc(self):
        assert parse_iso_datetime("2024-03-01T10:30:00Z") == datetime(2024, 3, 1, 10, 30)
        assert parse_iso_datetime("2024-03-01T12:30:00+02:00") == datetime(2024, 3, 1, 10, 30)
        assert parse_iso_datetime("2024-03-01T10:30:00") == datetime(2024, 3, 1, 10, 30)

    def test_blank_is_none(self):
        assert parse_iso_datetime(None) is None
        assert parse_iso_datetime("  ") is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_iso_datetime("2024-13-01")

    def test_to_utc_z(self):
        assert to_utc_z(datetime(2024, 3, 1, 10, 30, 5, 123456)) == "2024-03-01T10:30:05Z"
        aware = datetime(2024, 3, 1, 12, 30, tzinfo=timezone(timedelta(hours=2)))
        assert to_utc_z(aware) == "2024-03-01T10:30:00Z"
        assert to_utc_z(None) is None
