"""
Tests for products, partners, branches and the stock ledger endpoints.
"""

import pytest

from backoffice.services import inventory_service
from backoffice.services.concurrency import ConcurrentUpdateError, run_with_retry, unit_of_work

from conftest import create_purchase, create_sale, seed_stock, stock_quantity


class TestProducts:

    def test_create_uppercases_sku_and_rejects_duplicates(self, client, db_session, tenant_a):
        response = client.post('/api/products', json={'sku': 'new-1', 'name': 'New', 'price': 3.5},
                               headers=tenant_a.headers)

        assert response.status_code == 201
        assert response.json['data']['sku'] == 'NEW-1'
        assert response.json['data']['price'] == 3.5

        duplicate = client.post('/api/products', json={'sku': 'NEW-1', 'name': 'Again'}, headers=tenant_a.headers)
        assert duplicate.status_code == 409
        assert duplicate.json['error']['code'] == 'DUPLICATE'

    def test_same_sku_allowed_in_other_tenant(self, client, db_session, tenant_a, tenant_b):
        response = client.post('/api/products', json={'sku': 'ACME-001', 'name': 'Copy'}, headers=tenant_b.headers)
        assert response.status_code == 201

    def test_unknown_field_rejected(self, client, db_session, tenant_a):
        response = client.post('/api/products', json={'sku': 'X1', 'name': 'X', 'tenantId': 'evil'},
                               headers=tenant_a.headers)
        assert response.status_code == 400

    def test_list_and_search(self, client, db_session, tenant_a):
        response = client.get('/api/products?search=gadg', headers=tenant_a.headers)
        assert [p['name'] for p in response.json['data']] == ['Gadget']


class TestPartners:

    def test_supplier_update_cannot_touch_balance(self, client, db_session, tenant_a):
        response = client.put(f"/api/suppliers/{tenant_a.supplier.id}", json={'balance': 1000},
                              headers=tenant_a.headers)
        assert response.status_code == 400

        ok = client.put(f"/api/suppliers/{tenant_a.supplier.id}", json={'phone': '555-0100'},
                        headers=tenant_a.headers)
        assert ok.status_code == 200
        assert ok.json['data']['phone'] == '555-0100'
        assert ok.json['data']['balance'] == 0.0

    def test_customer_create_and_get(self, client, db_session, tenant_a):
        created = client.post('/api/customers', json={'name': 'Jo', 'email': 'jo@example.test'},
                              headers=tenant_a.headers)
        assert created.status_code == 201

        fetched = client.get(f"/api/customers/{created.json['data']['id']}", headers=tenant_a.headers)
        assert fetched.json['data']['name'] == 'Jo'


class TestBranches:

    def test_new_branch_gets_default_warehouse(self, client, db_session, tenant_a):
        created = client.post('/api/branches', json={'name': 'Harbour'}, headers=tenant_a.headers)
        assert created.status_code == 201

        warehouses = client.get(f"/api/branches/{created.json['data']['id']}/warehouses",
                                headers=tenant_a.headers)
        assert [w['name'] for w in warehouses.json['data']] == ['Harbour Main Warehouse']

    def test_duplicate_branch_name(self, client, db_session, tenant_a):
        response = client.post('/api/branches', json={'name': 'Main Branch'}, headers=tenant_a.headers)
        assert response.status_code == 409


class TestSales:

    def test_sale_issues_stock_and_derives_payment(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        seed_stock(db_session, tenant_a, widget, 10)

        data = create_sale(client, tenant_a, [{'productId': widget.id, 'qty': 3, 'price': 10}],
                           discount=5, paidAmount=10)

        assert data['saleNumber'] == 'SAL-000001'
        assert data['subtotal'] == 30.0
        assert data['total'] == 25.0
        assert data['dueAmount'] == 15.0
        assert data['paymentStatus'] == 'PARTIAL'
        assert stock_quantity(db_session, tenant_a, widget) == 7


class TestStockLedger:

    def test_movements_filtered_by_reference(self, client, db_session, tenant_a):
        widget = tenant_a.products[0]
        purchase = create_purchase(client, tenant_a, [{'productId': widget.id, 'qty': 4, 'price': 1}])
        create_sale(client, tenant_a, [{'productId': widget.id, 'qty': 1, 'price': 2}])

        response = client.get(f"/api/stock/movements?refType=purchase&refId={purchase['id']}",
                              headers=tenant_a.headers)

        assert response.status_code == 200
        assert [(m['type'], m['quantity']) for m in response.json['data']] == [('IN', 4)]
        assert response.json['pagination']['total'] == 1

        everything = client.get('/api/stock/movements', headers=tenant_a.headers)
        assert everything.json['pagination']['total'] == 2

        levels = client.get(f"/api/stock?productId={widget.id}", headers=tenant_a.headers)
        assert [row['quantity'] for row in levels.json['data']] == [3]

    def test_bad_ref_type(self, client, db_session, tenant_a):
        response = client.get('/api/stock/movements?refType=TRANSFER', headers=tenant_a.headers)
        assert response.status_code == 400


class TestStockCounters:

    def _increment(self, fixture, product, quantity):
        return inventory_service.increment_stock(
            tenant_id=fixture.tenant.id,
            product_id=product.id,
            warehouse_id=fixture.warehouse.id,
            quantity=quantity,
        )

    def test_lost_insert_race_raises_retryable_error(self, db_session, tenant_a, monkeypatch):
        widget = tenant_a.products[0]
        seed_stock(db_session, tenant_a, widget, 3)
        monkeypatch.setattr(inventory_service, '_locked_stock_row', lambda **kwargs: None)

        with pytest.raises(ConcurrentUpdateError):
            with unit_of_work():
                self._increment(tenant_a, widget, 2)

        assert stock_quantity(db_session, tenant_a, widget) == 3

    def test_retry_lands_on_the_winning_row(self, db_session, tenant_a, monkeypatch):
        widget = tenant_a.products[0]
        seed_stock(db_session, tenant_a, widget, 3)
        real_lookup = inventory_service._locked_stock_row
        lookups = []

        def miss_first_lookup(**kwargs):
            lookups.append(kwargs)
            return None if len(lookups) == 1 else real_lookup(**kwargs)

        monkeypatch.setattr(inventory_service, '_locked_stock_row', miss_first_lookup)

        def _op():
            with unit_of_work():
                self._increment(tenant_a, widget, 2)

        run_with_retry(_op, backoff_base=0)

        assert len(lookups) == 2
        assert stock_quantity(db_session, tenant_a, widget) == 5
