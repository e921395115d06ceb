"""
Tests for document number allocation.
"""

import pytest

from backoffice.models import DocumentSequence
from backoffice.services.concurrency import unit_of_work
from backoffice.services.document_service import (
    DocumentSequenceError,
    format_document_number,
    next_document_number,
)

from conftest import create_purchase


def test_format_document_number():
    assert format_document_number("PURCHASE_RETURN", 1) == "PR0001"
    assert format_document_number("SALES_RETURN", 42) == "SR0042"
    assert format_document_number("PURCHASE", 7) == "PUR-000007"
    assert format_document_number("SALE", 123456) == "SAL-123456"


def test_sequence_increments_per_type(db_session, tenant_a):
    tenant_id = tenant_a.tenant.id
    with unit_of_work():
        numbers = [next_document_number(tenant_id=tenant_id, document_type="PURCHASE_RETURN") for _ in range(3)]
        other = next_document_number(tenant_id=tenant_id, document_type="SALES_RETURN")

    assert numbers == ["PR0001", "PR0002", "PR0003"]
    assert other == "SR0001"
    row = db_session.query(DocumentSequence).filter_by(tenant_id=tenant_id, document_type="PURCHASE_RETURN").one()
    assert row.next_number == 4


def test_rolled_back_allocation_is_not_consumed(db_session, tenant_a):
    tenant_id = tenant_a.tenant.id
    with unit_of_work():
        next_document_number(tenant_id=tenant_id, document_type="PURCHASE_RETURN")

    with pytest.raises(RuntimeError):
        with unit_of_work():
            next_document_number(tenant_id=tenant_id, document_type="PURCHASE_RETURN")
            raise RuntimeError("boom")

    with unit_of_work():
        assert next_document_number(tenant_id=tenant_id, document_type="PURCHASE_RETURN") == "PR0002"


def test_unknown_type_rejected(db_session, tenant_a):
    with pytest.raises(DocumentSequenceError):
        next_document_number(tenant_id=tenant_a.tenant.id, document_type="INVOICE")


def test_numbers_not_reused_after_delete(client, db_session, tenant_a):
    widget = tenant_a.products[0]
    purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 5, 'price': 10}])

    def _create():
        response = client.post('/api/purchase-returns', json={
            'purchaseId': purchase['id'],
            'items': [{'productId': widget.id, 'qty': 1, 'price': 10}],
        }, headers=tenant_a.headers)
        assert response.status_code == 201
        return response.json['data']

    first = _create()
    second = _create()
    assert client.delete(f"/api/purchase-returns/{second['id']}", headers=tenant_a.headers).status_code == 200
    third = _create()

    assert [first['returnNumber'], second['returnNumber'], third['returnNumber']] == ['PR0001', 'PR0002', 'PR0003']
