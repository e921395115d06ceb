"""
Tests for multi-tenant isolation.

Records of one tenant must never be visible to, or usable by, another:
lists are filtered by the caller's tenant and direct lookups of another
tenant's ids answer exactly like a missing id.
"""

from backoffice.models import SecurityEvent

from conftest import create_purchase, create_sale


def _purchase_return(client, fixture):
    widget = fixture.products[0]
    purchase = create_purchase(client, fixture, [{'productId': widget.id, 'qty': 2, 'price': 10}])
    response = client.post('/api/purchase-returns', json={
        'purchaseId': purchase['id'],
        'items': [{'productId': widget.id, 'qty': 1, 'price': 10}],
    }, headers=fixture.headers)
    assert response.status_code == 201
    return purchase, response.json['data']


class TestReturnIsolation:

    def test_other_tenant_cannot_list_returns(self, client, db_session, tenant_a, tenant_b):
        _purchase_return(client, tenant_a)

        response = client.get('/api/purchase-returns', headers=tenant_b.headers)

        assert response.status_code == 200
        assert response.json['data'] == []
        assert response.json['pagination']['total'] == 0

    def test_other_tenant_gets_404(self, client, db_session, tenant_a, tenant_b):
        _, record = _purchase_return(client, tenant_a)

        for method in (client.get, client.delete):
            response = method(f"/api/purchase-returns/{record['id']}", headers=tenant_b.headers)
            assert response.status_code == 404
            assert response.json['error']['code'] == 'RETURN_NOT_FOUND'

        update = client.put(f"/api/purchase-returns/{record['id']}", json={'reason': 'x'},
                            headers=tenant_b.headers)
        assert update.status_code == 404

        still_there = client.get(f"/api/purchase-returns/{record['id']}", headers=tenant_a.headers)
        assert still_there.status_code == 200
        assert still_there.json['data']['reason'] is None

    def test_cannot_return_against_other_tenants_purchase(self, client, db_session, tenant_a, tenant_b):
        purchase, _ = _purchase_return(client, tenant_a)

        response = client.post('/api/purchase-returns', json={
            'purchaseId': purchase['id'],
            'items': [{'productId': tenant_b.products[0].id, 'qty': 1, 'price': 10}],
        }, headers=tenant_b.headers)

        assert response.status_code == 404
        assert response.json['error']['code'] == 'PURCHASE_NOT_FOUND'
        db_session.expire_all()
        events = db_session.query(SecurityEvent).filter_by(event_type='CROSS_TENANT_ACCESS_DENIED').all()
        assert len(events) == 1
        assert events[0].tenant_id == tenant_b.tenant.id

    def test_cannot_return_other_tenants_product(self, client, db_session, tenant_a, tenant_b):
        widget_b = tenant_b.products[0]
        purchase = create_purchase(client, tenant_a, [{'productId': tenant_a.products[0].id, 'qty': 1, 'price': 1}])

        response = client.post('/api/purchase-returns', json={
            'purchaseId': purchase['id'],
            'items': [{'productId': widget_b.id, 'qty': 1, 'price': 1}],
        }, headers=tenant_a.headers)

        assert response.status_code == 404
        assert response.json['error']['code'] == 'PRODUCT_NOT_FOUND'

    def test_sales_returns_isolated(self, client, db_session, tenant_a, tenant_b):
        widget = tenant_a.products[0]
        sale = create_sale(client, tenant_a, [{'productId': widget.id, 'qty': 1, 'price': 10}])
        created = client.post('/api/sales-returns', json={
            'saleId': sale['id'],
            'items': [{'productId': widget.id, 'qty': 1, 'price': 10}],
        }, headers=tenant_a.headers).json['data']

        assert client.get('/api/sales-returns', headers=tenant_b.headers).json['data'] == []
        response = client.get(f"/api/sales-returns/{created['id']}", headers=tenant_b.headers)
        assert response.status_code == 404
        assert response.json['error']['code'] == 'RETURN_NOT_FOUND'


class TestDocumentIsolation:

    def test_purchases_and_stock_are_scoped(self, client, db_session, tenant_a, tenant_b):
        widget = tenant_a.products[0]
        purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 3, 'price': 10}])

        assert client.get('/api/purchases', headers=tenant_b.headers).json['data'] == []
        assert client.get(f"/api/purchases/{purchase['id']}", headers=tenant_b.headers).status_code == 404
        assert client.get('/api/stock', headers=tenant_b.headers).json['data'] == []
        assert client.get('/api/stock/movements', headers=tenant_b.headers).json['data'] == []

    def test_numbering_is_per_tenant(self, client, db_session, tenant_a, tenant_b):
        first_a = create_purchase(client, tenant_a, [{'productId': tenant_a.products[0].id, 'qty': 1, 'price': 1}])
        first_b = create_purchase(client, tenant_b, [{'productId': tenant_b.products[0].id, 'qty': 1, 'price': 1}])

        assert first_a['purchaseNumber'] == 'PUR-000001'
        assert first_b['purchaseNumber'] == 'PUR-000001'
