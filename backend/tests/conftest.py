"""
Pytest fixtures for backoffice backend tests.

Provides test database setup, tenant fixtures with a ready admin login,
and helpers that drive the API the way a client would.
"""

from dataclasses import dataclass
from decimal import Decimal

import pytest

from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Branch, Customer, Product, Stock, Supplier, Tenant, Warehouse
from backoffice.services import inventory_service, permission_service
from backoffice.services.auth_service import create_user


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@dataclass
class TenantFixture:
    tenant: Tenant
    branch: Branch
    warehouse: Warehouse
    supplier: Supplier
    customer: Customer
    products: list
    headers: dict


def get_auth_token(client, tenant_code, username, password=PASSWORD):
    """Login and return the bearer token."""
    response = client.post('/api/auth/login', json={
        'tenantCode': tenant_code,
        'username': username,
        'password': password,
    })
    assert response.status_code == 200, response.json
    return response.json['data']['token']


def auth_headers(token):
    return {'Authorization': f'Bearer {token}'}


def make_tenant(db_session, client, code, *, role_name="admin"):
    """Tenant with one branch, one warehouse, partners, two products and a logged-in user."""
    tenant = Tenant(name=f"{code} Retail", code=code, is_active=True)
    db_session.add(tenant)
    db_session.flush()

    branch = Branch(tenant_id=tenant.id, name="Main Branch", code="MAIN")
    db_session.add(branch)
    db_session.flush()
    warehouse = Warehouse(tenant_id=tenant.id, branch_id=branch.id, name="Main Warehouse")
    supplier = Supplier(tenant_id=tenant.id, name=f"{code} Supplies", balance=Decimal("0"))
    customer = Customer(tenant_id=tenant.id, name=f"{code} Customer")
    products = [
        Product(tenant_id=tenant.id, sku=f"{code}-001", name="Widget", price=Decimal("10"), cost=Decimal("5")),
        Product(tenant_id=tenant.id, sku=f"{code}-002", name="Gadget", price=Decimal("4"), cost=Decimal("2")),
    ]
    db_session.add_all([warehouse, supplier, customer, *products])

    permission_service.create_default_roles(tenant.id)
    username = f"{role_name}_{code.lower()}"
    create_user(
        tenant_id=tenant.id,
        username=username,
        email=f"{username}@example.test",
        password=PASSWORD,
        role_name=role_name,
        branch_id=branch.id,
    )
    db_session.commit()

    token = get_auth_token(client, code, username)
    return TenantFixture(
        tenant=tenant,
        branch=branch,
        warehouse=warehouse,
        supplier=supplier,
        customer=customer,
        products=products,
        headers=auth_headers(token),
    )


@pytest.fixture(scope='function')
def tenant_a(db_session, client):
    """Tenant A (ACME) with an admin login."""
    return make_tenant(db_session, client, "ACME")


@pytest.fixture(scope='function')
def tenant_b(db_session, client):
    """Tenant B (BETA) with an admin login."""
    return make_tenant(db_session, client, "BETA")


@pytest.fixture(scope='function')
def super_admin_headers(db_session, client):
    """Login headers for a PLATFORM_ADMIN user of the system tenant."""
    tenant = Tenant(name="Platform", code="SYSTEM", is_active=True, is_system=True)
    db_session.add(tenant)
    db_session.flush()
    role = permission_service.create_super_admin_role(tenant.id)
    create_user(
        tenant_id=tenant.id,
        username="superadmin",
        email="superadmin@example.test",
        password=PASSWORD,
        role_name=role.name,
    )
    db_session.commit()
    return auth_headers(get_auth_token(client, "SYSTEM", "superadmin"))


def seed_stock(db_session, fixture, product, quantity):
    db_session.add(Stock(
        tenant_id=fixture.tenant.id,
        product_id=product.id,
        warehouse_id=fixture.warehouse.id,
        quantity=quantity,
    ))
    db_session.commit()


def stock_quantity(db_session, fixture, product):
    db_session.expire_all()
    return inventory_service.get_stock_quantity(
        tenant_id=fixture.tenant.id,
        product_id=product.id,
        warehouse_id=fixture.warehouse.id,
    )


def create_purchase(client, fixture, items, **extra):
    payload = {
        'branchId': fixture.branch.id,
        'supplierId': fixture.supplier.id,
        'items': items,
        **extra,
    }
    response = client.post('/api/purchases', json=payload, headers=fixture.headers)
    assert response.status_code == 201, response.json
    return response.json['data']


def create_sale(client, fixture, items, **extra):
    payload = {
        'branchId': fixture.branch.id,
        'customerId': fixture.customer.id,
        'items': items,
        **extra,
    }
    response = client.post('/api/sales', json=payload, headers=fixture.headers)
    assert response.status_code == 201, response.json
    return response.json['data']
