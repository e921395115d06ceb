"""
Tests for purchases: line arithmetic, receiving, payments and deletion rules.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import text

from backoffice.models import Purchase, PurchaseItem, PurchasePayment, StockMovement, Supplier
from backoffice.services import purchase_service
from backoffice.services.purchase_service import compute_line_total, derive_payment_state
from backoffice.time_utils import utcnow

from conftest import create_purchase, stock_quantity


class TestLineArithmetic:

    def test_compute_line_total(self):
        assert compute_line_total(4, Decimal("2"), Decimal("0"), Decimal("1")) == Decimal("9.00")
        assert compute_line_total(1, Decimal("10"), Decimal("2"), Decimal("0")) == Decimal("8.00")

    @pytest.mark.parametrize("total, paid, due, status", [
        ("100", "0", "100.00", "UNPAID"),
        ("100", "40", "60.00", "PARTIAL"),
        ("100", "100", "0.00", "PAID"),
        ("100", "150", "0.00", "PAID"),
    ])
    def test_derive_payment_state(self, total, paid, due, status):
        assert derive_payment_state(Decimal(total), Decimal(paid)) == (Decimal(due), status)


class TestCreatePurchase:

    def test_totals_and_stock(self, client, db_session, tenant_a):
        widget, gadget = tenant_a.products
        data = create_purchase(client, tenant_a, [
            {'productId': widget.id, 'qty': 4, 'price': 2, 'tax': 1},
            {'productId': gadget.id, 'qty': 1, 'price': 10, 'discount': 2},
        ], discount=3, shippingCost=5)

        assert [item['total'] for item in data['items']] == [9.0, 8.0]
        assert data['subtotal'] == 17.0
        assert data['taxAmount'] == 1.0
        assert data['total'] == 19.0
        assert data['dueAmount'] == 19.0
        assert data['paymentStatus'] == 'UNPAID'
        assert data['status'] == 'RECEIVED'
        assert data['purchaseNumber'] == 'PUR-000001'
        assert data['warehouseId'] == tenant_a.warehouse.id

        assert stock_quantity(db_session, tenant_a, widget) == 4
        assert stock_quantity(db_session, tenant_a, gadget) == 1
        assert db_session.query(StockMovement).filter_by(ref_id=data['id'], type='IN').count() == 2
        assert db_session.get(Supplier, tenant_a.supplier.id).balance == Decimal("19.00")

    def test_missing_supplier_is_404(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        response = client.post('/api/purchases', json={
            'branchId': tenant_a.branch.id,
            'supplierId': '00000000-0000-4000-8000-000000000000',
            'items': [{'productId': widget.id, 'qty': 1, 'price': 1}],
        }, headers=tenant_a.headers)

        assert response.status_code == 404
        assert response.json['error']['code'] == 'SUPPLIER_NOT_FOUND'
        db_session.expire_all()
        assert db_session.query(Purchase).count() == 0


class TestPayments:

    def test_overpayment_clamps_due(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 10, 'price': 10}])

        first = client.post(f"/api/purchases/{purchase['id']}/payments",
                            json={'amount': 60, 'paymentMethod': 'cash'}, headers=tenant_a.headers)
        assert first.status_code == 201
        assert first.json['data']['dueAmount'] == 40.0
        assert first.json['data']['paymentStatus'] == 'PARTIAL'

        second = client.post(f"/api/purchases/{purchase['id']}/payments",
                             json={'amount': 60}, headers=tenant_a.headers)
        data = second.json['data']
        assert data['paidAmount'] == 120.0
        assert data['dueAmount'] == 0.0
        assert data['paymentStatus'] == 'PAID'
        assert len(data['payments']) == 2

        db_session.expire_all()
        assert db_session.get(Supplier, tenant_a.supplier.id).balance == Decimal("-20.00")

    def test_non_positive_amount_rejected(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 1, 'price': 10}])

        response = client.post(f"/api/purchases/{purchase['id']}/payments",
                               json={'amount': 0}, headers=tenant_a.headers)
        assert response.status_code == 400


class TestDeletePurchase:

    def test_received_purchase_cannot_be_deleted(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 1, 'price': 10}])

        response = client.delete(f"/api/purchases/{purchase['id']}", headers=tenant_a.headers)

        assert response.status_code == 409
        assert response.json['error']['code'] == 'PURCHASE_ALREADY_RECEIVED'
        assert stock_quantity(db_session, tenant_a, widget) == 1


    def test_received_purchase_cannot_be_reopened(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 5, 'price': 10}])

        reopened = client.put(f"/api/purchases/{purchase['id']}", json={'status': 'PENDING'},
                              headers=tenant_a.headers)
        assert reopened.status_code == 409
        assert reopened.json['error']['code'] == 'PURCHASE_ALREADY_RECEIVED'

        deleted = client.delete(f"/api/purchases/{purchase['id']}", headers=tenant_a.headers)
        assert deleted.status_code == 409

        db_session.expire_all()
        assert db_session.get(Purchase, purchase['id']).status == 'RECEIVED'
        assert stock_quantity(db_session, tenant_a, widget) == 5

    def test_received_purchase_note_still_editable(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 1, 'price': 10}])

        response = client.put(f"/api/purchases/{purchase['id']}",
                              json={'status': 'RECEIVED', 'note': 'checked in'}, headers=tenant_a.headers)

        assert response.status_code == 200
        assert response.json['data']['note'] == 'checked in'

    def test_pending_purchase_delete_leaves_stock_and_balance(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 5, 'price': 10}],
                                   status='PENDING')
        assert stock_quantity(db_session, tenant_a, widget) == 5

        response = client.delete(f"/api/purchases/{purchase['id']}", headers=tenant_a.headers)

        assert response.status_code == 200
        missing = client.get(f"/api/purchases/{purchase['id']}", headers=tenant_a.headers)
        assert missing.status_code == 404
        assert missing.json['error']['code'] == 'PURCHASE_NOT_FOUND'

        assert stock_quantity(db_session, tenant_a, widget) == 5
        assert db_session.query(StockMovement).filter_by(ref_id=purchase['id'], type='IN').count() == 1
        assert db_session.get(Supplier, tenant_a.supplier.id).balance == Decimal("50.00")


class TestCreateRollback:

    def test_failure_on_second_line_leaves_nothing_behind(self, client, db_session, tenant_a, monkeypatch):
        widget, gadget = tenant_a.products
        real_receive = purchase_service.receive_into_stock
        calls = []

        def fail_on_second_line(**kwargs):
            calls.append(kwargs['product_id'])
            if len(calls) == 2:
                raise RuntimeError("warehouse offline")
            return real_receive(**kwargs)

        monkeypatch.setattr(purchase_service, 'receive_into_stock', fail_on_second_line)
        response = client.post('/api/purchases', json={
            'branchId': tenant_a.branch.id,
            'supplierId': tenant_a.supplier.id,
            'items': [
                {'productId': widget.id, 'qty': 4, 'price': 2},
                {'productId': gadget.id, 'qty': 1, 'price': 10},
            ],
        }, headers=tenant_a.headers)

        assert response.status_code == 500
        assert calls == [widget.id, gadget.id]

        db_session.expire_all()
        assert db_session.query(Purchase).count() == 0
        assert db_session.query(PurchaseItem).count() == 0
        assert db_session.query(StockMovement).count() == 0
        assert stock_quantity(db_session, tenant_a, widget) == 0
        assert db_session.get(Supplier, tenant_a.supplier.id).balance == Decimal("0.00")

        monkeypatch.undo()
        data = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 1, 'price': 2}])
        assert data['purchaseNumber'] == 'PUR-000001'


class TestConcurrentPayments:

    def test_stale_version_is_retried_once(self, client, db_session, tenant_a, monkeypatch):
        widget = tenant_a.products[0]
        purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 2, 'price': 10}])
        first = client.post(f"/api/purchases/{purchase['id']}/payments", json={'amount': 10},
                            headers=tenant_a.headers)
        assert first.status_code == 201

        real_derive = purchase_service.derive_payment_state
        attempts = []

        def bump_version_on_first_attempt(total, paid):
            attempts.append(paid)
            if len(attempts) == 1:
                # another writer commits between our read and our flush
                db_session.execute(
                    text("UPDATE purchases SET version_id = version_id + 1 WHERE id = :id"),
                    {"id": purchase['id']},
                )
            return real_derive(total, paid)

        monkeypatch.setattr(purchase_service, 'derive_payment_state', bump_version_on_first_attempt)
        second = client.post(f"/api/purchases/{purchase['id']}/payments", json={'amount': 15},
                             headers=tenant_a.headers)

        assert second.status_code == 201
        assert attempts == [Decimal("25.00"), Decimal("25.00")]
        data = second.json['data']
        assert data['paidAmount'] == 25.0
        assert data['dueAmount'] == 0.0
        assert data['paymentStatus'] == 'PAID'
        assert len(data['payments']) == 2

        db_session.expire_all()
        assert db_session.query(PurchasePayment).filter_by(purchase_id=purchase['id']).count() == 2
        assert db_session.get(Supplier, tenant_a.supplier.id).balance == Decimal("-5.00")


class TestListPurchases:

    def test_date_only_bounds_cover_the_whole_day(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 1, 'price': 1}])
        today = utcnow().date()

        same_day = client.get(f"/api/purchases?startDate={today.isoformat()}&endDate={today.isoformat()}",
                              headers=tenant_a.headers)
        assert same_day.status_code == 200
        assert same_day.json['pagination']['total'] == 1

        tomorrow = (today + timedelta(days=1)).isoformat()
        later = client.get(f"/api/purchases?startDate={tomorrow}", headers=tenant_a.headers)
        assert later.json['pagination']['total'] == 0

    def test_bad_date_rejected(self, client, db_session, tenant_a):
        response = client.get('/api/purchases?endDate=last-week', headers=tenant_a.headers)
        assert response.status_code == 400
