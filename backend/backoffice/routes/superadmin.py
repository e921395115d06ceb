# Overview: Flask API routes for the platform operator console.

"""
Super Admin API Routes

SECURITY: The whole blueprint sits behind super_admin_gate, registered
as a before_request hook, so no handler below runs unless the caller is
authenticated AND their role holds PLATFORM_ADMIN.
- 401 UNAUTHORIZED: no/invalid bearer token
- 403 FORBIDDEN: authenticated without PLATFORM_ADMIN
"""

from flask import Blueprint, request, current_app

from ..decorators import super_admin_gate
from ..errors import ServiceError, error_response, internal_error_response
from ..responses import success_response
from ..services import superadmin_service


superadmin_bp = Blueprint("superadmin", __name__, url_prefix="/api/superadmin")
superadmin_bp.before_request(super_admin_gate)


@superadmin_bp.get("/dashboard")
def dashboard_route():
    try:
        return success_response(superadmin_service.get_dashboard())
    except Exception:
        current_app.logger.exception("Failed to build super admin dashboard")
        return internal_error_response()


@superadmin_bp.get("/tenants")
def list_tenants_route():
    """
    Query parameters: page, limit, sortBy (createdAt|name|code), sortOrder,
    search (name or code), isActive (true|false)
    """
    try:
        tenants, pagination = superadmin_service.list_tenants(request.args)
        return success_response([tenant.to_dict() for tenant in tenants], pagination=pagination)
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list tenants")
        return internal_error_response()


@superadmin_bp.post("/tenants")
def create_tenant_route():
    """
    Request body:
    {
        "name": "Acme Retail",
        "code": "ACME",
        "isActive": true,            (optional)
        "adminUsername": "admin",    (optional, all three or none)
        "adminEmail": "admin@acme.test",
        "adminPassword": "..."
    }

    Returns:
        201: Tenant created with Main Branch, default roles and optional admin
        400: Invalid input
        409: DUPLICATE tenant code
    """
    try:
        tenant = superadmin_service.create_tenant(request.get_json(silent=True))
        return success_response(
            superadmin_service.tenant_details(tenant), status=201, message="Tenant created successfully"
        )
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create tenant")
        return internal_error_response()


@superadmin_bp.get("/tenants/<tenant_id>")
def get_tenant_route(tenant_id: str):
    try:
        tenant = superadmin_service.get_tenant(tenant_id)
        return success_response(superadmin_service.tenant_details(tenant))
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get tenant")
        return internal_error_response()


@superadmin_bp.post("/tenants/<tenant_id>/activate")
def activate_tenant_route(tenant_id: str):
    try:
        tenant = superadmin_service.set_tenant_active(tenant_id, True)
        return success_response(tenant.to_dict(), message="Tenant activated")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to activate tenant")
        return internal_error_response()


@superadmin_bp.post("/tenants/<tenant_id>/deactivate")
def deactivate_tenant_route(tenant_id: str):
    """Sessions of the tenant's users stop validating on their next request."""
    try:
        tenant = superadmin_service.set_tenant_active(tenant_id, False)
        return success_response(tenant.to_dict(), message="Tenant deactivated")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to deactivate tenant")
        return internal_error_response()
