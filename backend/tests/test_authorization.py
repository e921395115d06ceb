"""
Tests for authentication, tenant context and the super-admin gate.
"""

from datetime import timedelta

import pytest

from backoffice.models import Role, SecurityEvent, SessionToken, Tenant, User
from backoffice.services import permission_service
from backoffice.services.session_service import generate_token, hash_token
from backoffice.time_utils import utcnow

from conftest import PASSWORD, auth_headers, get_auth_token, make_tenant


class TestAuthentication:

    def test_missing_bearer_is_401(self, client, db_session):
        response = client.get('/api/purchase-returns')

        assert response.status_code == 401
        assert response.json == {
            'success': False,
            'error': {'code': 'UNAUTHORIZED', 'message': 'Authentication required'},
        }

    def test_garbage_token_is_401(self, client, db_session):
        response = client.get('/api/purchases', headers=auth_headers('not-a-real-token'))
        assert response.status_code == 401

    def test_login_wrong_password(self, client, db_session, tenant_a):
        response = client.post('/api/auth/login', json={
            'tenantCode': 'ACME',
            'username': 'admin_acme',
            'password': 'Wrong-password1!',
        })

        assert response.status_code == 401
        db_session.expire_all()
        assert db_session.query(SecurityEvent).filter_by(event_type='LOGIN_FAILED').count() == 1

    def test_login_requires_tenant_code(self, client, db_session, tenant_a):
        response = client.post('/api/auth/login', json={'username': 'admin_acme', 'password': PASSWORD})
        assert response.status_code == 400

    def test_username_is_scoped_to_tenant(self, client, db_session, tenant_a):
        response = client.post('/api/auth/login', json={
            'tenantCode': 'NOPE',
            'username': 'admin_acme',
            'password': PASSWORD,
        })
        assert response.status_code == 401

    def test_me_reports_tenant_and_permissions(self, client, db_session, tenant_a):
        response = client.get('/api/auth/me', headers=tenant_a.headers)

        assert response.status_code == 200
        data = response.json['data']
        assert data['tenantId'] == tenant_a.tenant.id
        assert data['user']['role'] == 'admin'
        assert 'MANAGE_RETURNS' in data['permissions']
        assert 'PLATFORM_ADMIN' not in data['permissions']

    def test_logout_revokes_token(self, client, db_session, tenant_a):
        assert client.post('/api/auth/logout', headers=tenant_a.headers).status_code == 200
        assert client.get('/api/auth/me', headers=tenant_a.headers).status_code == 401

    def test_expired_session_is_401(self, client, db_session, tenant_a):
        db_session.query(SessionToken).update({'expires_at': utcnow() - timedelta(minutes=1)})
        db_session.commit()

        assert client.get('/api/auth/me', headers=tenant_a.headers).status_code == 401

    def test_deactivated_tenant_sessions_rejected(self, client, db_session, tenant_a):
        tenant = db_session.get(Tenant, tenant_a.tenant.id)
        tenant.is_active = False
        db_session.commit()

        assert client.get('/api/auth/me', headers=tenant_a.headers).status_code == 401


class TestTenantContext:

    def test_session_without_tenant_is_403(self, client, db_session, tenant_a):
        user = db_session.query(User).filter_by(username='admin_acme').one()
        token = generate_token()
        now = utcnow()
        db_session.add(SessionToken(
            user_id=user.id,
            tenant_id=None,
            token_hash=hash_token(token),
            created_at=now,
            last_used_at=now,
            expires_at=now + timedelta(hours=1),
        ))
        db_session.commit()

        response = client.get('/api/purchase-returns', headers=auth_headers(token))

        assert response.status_code == 403
        assert response.json['error']['code'] == 'TENANT_CONTEXT_REQUIRED'
        db_session.expire_all()
        assert db_session.query(SecurityEvent).filter_by(event_type='TENANT_CONTEXT_MISSING').count() == 1


class TestPermissions:

    def test_cashier_can_view_but_not_manage(self, client, db_session):
        cashier = make_tenant(db_session, client, "SHOP", role_name="cashier")

        assert client.get('/api/sales-returns', headers=cashier.headers).status_code == 200
        assert client.get('/api/purchases', headers=cashier.headers).status_code == 403
        denied = client.delete('/api/sales-returns/00000000-0000-4000-8000-000000000000',
                               headers=cashier.headers)
        assert denied.status_code == 403
        assert denied.json['error']['code'] == 'FORBIDDEN'

        db_session.expire_all()
        assert db_session.query(SecurityEvent).filter_by(event_type='PERMISSION_DENIED').count() == 2


class TestSuperAdminGate:

    def test_unauthenticated_is_401(self, client, db_session):
        assert client.get('/api/superadmin/dashboard').status_code == 401

    def test_tenant_admin_is_403(self, client, db_session, tenant_a):
        response = client.get('/api/superadmin/tenants', headers=tenant_a.headers)

        assert response.status_code == 403
        assert response.json['error']['code'] == 'FORBIDDEN'
        db_session.expire_all()
        assert db_session.query(SecurityEvent).filter_by(event_type='SUPER_ADMIN_DENIED').count() == 1

    def test_role_named_super_is_not_enough(self, client, db_session, tenant_a):
        role = db_session.query(Role).filter_by(tenant_id=tenant_a.tenant.id, name='admin').one()
        role.name = 'super admin'
        db_session.commit()

        assert client.get('/api/superadmin/dashboard', headers=tenant_a.headers).status_code == 403

    def test_platform_admin_is_200(self, client, db_session, tenant_a, super_admin_headers):
        response = client.get('/api/superadmin/dashboard', headers=super_admin_headers)

        assert response.status_code == 200
        assert response.json['data']['totalTenants'] == 2
        assert response.json['data']['activeTenants'] == 2

    def test_list_and_create_tenants(self, client, db_session, tenant_a, super_admin_headers):
        created = client.post('/api/superadmin/tenants', json={
            'name': 'Gamma Stores',
            'code': 'gamma',
            'adminUsername': 'gadmin',
            'adminEmail': 'gadmin@gamma.test',
            'adminPassword': PASSWORD,
        }, headers=super_admin_headers)

        assert created.status_code == 201
        assert created.json['data']['code'] == 'GAMMA'
        assert created.json['data']['userCount'] == 1
        assert created.json['data']['branchCount'] == 1

        token = get_auth_token(client, 'GAMMA', 'gadmin')
        branches = client.get('/api/branches', headers=auth_headers(token))
        assert [b['name'] for b in branches.json['data']] == ['Main Branch']

        duplicate = client.post('/api/superadmin/tenants', json={'name': 'Again', 'code': 'GAMMA'},
                                headers=super_admin_headers)
        assert duplicate.status_code == 409

        listed = client.get('/api/superadmin/tenants?search=gam', headers=super_admin_headers)
        assert [t['code'] for t in listed.json['data']] == ['GAMMA']

    def test_deactivate_tenant_blocks_login(self, client, db_session, tenant_a, super_admin_headers):
        response = client.post(f"/api/superadmin/tenants/{tenant_a.tenant.id}/deactivate",
                               headers=super_admin_headers)

        assert response.status_code == 200
        assert response.json['data']['isActive'] is False
        login = client.post('/api/auth/login', json={
            'tenantCode': 'ACME', 'username': 'admin_acme', 'password': PASSWORD,
        })
        assert login.status_code == 401

    def test_system_tenant_cannot_be_deactivated(self, client, db_session, super_admin_headers):
        system = db_session.query(Tenant).filter_by(code='SYSTEM').one()
        response = client.post(f"/api/superadmin/tenants/{system.id}/deactivate", headers=super_admin_headers)

        assert response.status_code == 409
        assert response.json['error']['code'] == 'SYSTEM_TENANT_PROTECTED'


class TestRoleGrants:

    def test_grant_is_idempotent(self, db_session, tenant_a):
        role = db_session.query(Role).filter_by(tenant_id=tenant_a.tenant.id, name='cashier').one()

        assert permission_service.grant_permission_to_role(role, 'MANAGE_BRANCHES') is True
        assert permission_service.grant_permission_to_role(role, 'MANAGE_BRANCHES') is False
        assert 'MANAGE_BRANCHES' in permission_service.get_role_permissions(role.id)

    def test_unknown_permission_rejected(self, db_session, tenant_a):
        role = db_session.query(Role).filter_by(tenant_id=tenant_a.tenant.id, name='cashier').one()

        with pytest.raises(ValueError):
            permission_service.grant_permission_to_role(role, 'LAUNCH_ROCKETS')
