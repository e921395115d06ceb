"""
Tests for purchase returns.

Covers:
- Totals derived from the lines (tax is always zero)
- Stock leaves the purchase's warehouse with an OUT movement per line
- Supplier balance drops by the return total
- Update only touches reason / supplier
- Validation and lookups fail before anything is written
"""

from decimal import Decimal

from backoffice.models import PurchaseReturn, StockMovement, Supplier

from conftest import create_purchase, make_tenant, seed_stock, stock_quantity


def _purchase_for(client, fixture):
    widget, gadget = fixture.products
    return create_purchase(client, fixture, [
        {'productId': widget.id, 'qty': 1, 'price': 10},
        {'productId': gadget.id, 'qty': 1, 'price': 5},
    ])


def _supplier_balance(db_session, fixture):
    db_session.expire_all()
    return db_session.get(Supplier, fixture.supplier.id).balance


class TestCreatePurchaseReturn:

    def test_totals_from_lines(self, client, db_session, tenant_a):
        purchase = _purchase_for(client, tenant_a)
        widget, gadget = tenant_a.products

        response = client.post('/api/purchase-returns', json={
            'purchaseId': purchase['id'],
            'items': [
                {'productId': widget.id, 'qty': 2, 'price': 10},
                {'productId': gadget.id, 'qty': 1, 'price': 5},
            ],
            'reason': 'Damaged',
        }, headers=tenant_a.headers)

        assert response.status_code == 201
        data = response.json['data']
        assert data['subtotal'] == 25.0
        assert data['taxAmount'] == 0.0
        assert data['total'] == 25.0
        assert [item['total'] for item in data['items']] == [20.0, 5.0]
        assert data['supplierId'] == tenant_a.supplier.id
        assert data['status'] == 'COMPLETED'
        assert data['returnNumber'] == 'PR0001'

    def test_stock_decremented_and_supplier_balance_reduced(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        seed_stock(db_session, tenant_a, widget, 3)
        purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 7, 'price': 10}])
        assert stock_quantity(db_session, tenant_a, widget) == 10
        balance_before = _supplier_balance(db_session, tenant_a)

        response = client.post('/api/purchase-returns', json={
            'purchaseId': purchase['id'],
            'items': [{'productId': widget.id, 'qty': 3, 'price': 10}],
        }, headers=tenant_a.headers)

        assert response.status_code == 201
        assert stock_quantity(db_session, tenant_a, widget) == 7
        assert _supplier_balance(db_session, tenant_a) == balance_before - Decimal("30.00")

        movements = db_session.query(StockMovement).filter_by(ref_id=response.json['data']['id']).all()
        assert len(movements) == 1
        assert movements[0].type == 'OUT'
        assert movements[0].quantity == 3
        assert movements[0].ref_type == 'PURCHASE_RETURN'
        assert movements[0].warehouse_id == tenant_a.warehouse.id

    def test_stock_floored_at_zero(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 2, 'price': 10}])

        response = client.post('/api/purchase-returns', json={
            'purchaseId': purchase['id'],
            'items': [{'productId': widget.id, 'qty': 5, 'price': 10}],
        }, headers=tenant_a.headers)

        assert response.status_code == 201
        assert stock_quantity(db_session, tenant_a, widget) == 0

    def test_unknown_purchase_returns_404(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        response = client.post('/api/purchase-returns', json={
            'purchaseId': '00000000-0000-4000-8000-000000000000',
            'items': [{'productId': widget.id, 'qty': 1, 'price': 10}],
        }, headers=tenant_a.headers)

        assert response.status_code == 404
        assert response.json['error']['code'] == 'PURCHASE_NOT_FOUND'

    def test_validation_error_writes_nothing(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        purchase = _purchase_for(client, tenant_a)
        stock_before = stock_quantity(db_session, tenant_a, widget)
        balance_before = _supplier_balance(db_session, tenant_a)

        for bad_items in (
            [],
            [{'productId': widget.id, 'qty': 0, 'price': 10}],
            [{'productId': widget.id, 'qty': 1, 'price': -1}],
            [{'productId': 'not-a-uuid', 'qty': 1, 'price': 10}],
            [{'productId': widget.id, 'qty': 1.5, 'price': 10}],
        ):
            response = client.post('/api/purchase-returns', json={
                'purchaseId': purchase['id'],
                'items': bad_items,
            }, headers=tenant_a.headers)
            assert response.status_code == 400, bad_items
            assert response.json['success'] is False
            assert response.json['error']['code'] == 'VALIDATION_ERROR'

        db_session.expire_all()
        assert db_session.query(PurchaseReturn).count() == 0
        assert db_session.query(StockMovement).filter_by(ref_type='PURCHASE_RETURN').count() == 0
        assert stock_quantity(db_session, tenant_a, widget) == stock_before
        assert _supplier_balance(db_session, tenant_a) == balance_before

    def test_requires_manage_returns(self, client, db_session):
        cashier = make_tenant(db_session, client, "CASH", role_name="cashier")
        response = client.post('/api/purchase-returns', json={}, headers=cashier.headers)

        assert response.status_code == 403
        assert response.json['error']['code'] == 'FORBIDDEN'


class TestUpdatePurchaseReturn:

    def test_update_changes_reason_only(self, client, db_session, tenant_a):
        purchase = _purchase_for(client, tenant_a)
        widget = tenant_a.products[0]
        created = client.post('/api/purchase-returns', json={
            'purchaseId': purchase['id'],
            'items': [{'productId': widget.id, 'qty': 2, 'price': 10}],
            'reason': 'Damaged',
        }, headers=tenant_a.headers).json['data']

        response = client.put(f"/api/purchase-returns/{created['id']}", json={
            'reason': 'Wrong colour',
            'total': 1,
            'items': [{'productId': widget.id, 'qty': 9, 'price': 99}],
        }, headers=tenant_a.headers)

        assert response.status_code == 200
        data = response.json['data']
        assert data['reason'] == 'Wrong colour'
        assert data['total'] == created['total']
        assert data['subtotal'] == created['subtotal']
        assert data['items'] == created['items']

    def test_update_missing_return(self, client, db_session, tenant_a):
        response = client.put(
            '/api/purchase-returns/00000000-0000-4000-8000-000000000000',
            json={'reason': 'x'},
            headers=tenant_a.headers,
        )
        assert response.status_code == 404
        assert response.json['error']['code'] == 'RETURN_NOT_FOUND'


class TestDeletePurchaseReturn:

    def test_delete_missing_return(self, client, db_session, tenant_a):
        response = client.delete(
            '/api/purchase-returns/00000000-0000-4000-8000-000000000000',
            headers=tenant_a.headers,
        )
        assert response.status_code == 404
        assert response.json['success'] is False
        assert response.json['error']['code'] == 'RETURN_NOT_FOUND'

    def test_delete_keeps_stock_and_movements(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 5, 'price': 10}])
        created = client.post('/api/purchase-returns', json={
            'purchaseId': purchase['id'],
            'items': [{'productId': widget.id, 'qty': 2, 'price': 10}],
        }, headers=tenant_a.headers).json['data']
        balance_after_return = _supplier_balance(db_session, tenant_a)

        response = client.delete(f"/api/purchase-returns/{created['id']}", headers=tenant_a.headers)

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(PurchaseReturn, created['id']) is None
        assert stock_quantity(db_session, tenant_a, widget) == 3
        assert db_session.query(StockMovement).filter_by(ref_id=created['id']).count() == 1
        assert _supplier_balance(db_session, tenant_a) == balance_after_return


class TestListPurchaseReturns:

    def test_list_paginates_and_filters(self, client, db_session, tenant_a):
        purchase = _purchase_for(client, tenant_a)
        widget = tenant_a.products[0]
        for _ in range(3):
            client.post('/api/purchase-returns', json={
                'purchaseId': purchase['id'],
                'items': [{'productId': widget.id, 'qty': 1, 'price': 10}],
            }, headers=tenant_a.headers)

        response = client.get('/api/purchase-returns?limit=2&sortBy=returnNumber&sortOrder=asc',
                              headers=tenant_a.headers)

        assert response.status_code == 200
        assert [r['returnNumber'] for r in response.json['data']] == ['PR0001', 'PR0002']
        assert response.json['pagination'] == {'page': 1, 'limit': 2, 'total': 3, 'totalPages': 2}

        filtered = client.get(f"/api/purchase-returns?purchaseId={purchase['id']}&search=PR0003",
                              headers=tenant_a.headers)
        assert [r['returnNumber'] for r in filtered.json['data']] == ['PR0003']

    def test_list_rejects_bad_query(self, client, db_session, tenant_a):
        assert client.get('/api/purchase-returns?limit=1000', headers=tenant_a.headers).status_code == 400
        assert client.get('/api/purchase-returns?sortBy=secret', headers=tenant_a.headers).status_code == 400
