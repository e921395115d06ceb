# Overview: Flask API routes for supplier operations; parses input and returns JSON responses.

"""
Supplier Routes

SECURITY: All routes require authentication.
- View operations require VIEW_PARTNERS permission
- Create/update require MANAGE_PARTNERS permission

Balances are read-only here; they move only through purchases, purchase
payments and purchase returns.
"""

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response, internal_error_response
from ..responses import success_response
from ..services import supplier_service
from ..services.tenant_service import get_current_tenant_id


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
@require_permission("VIEW_PARTNERS")
def list_suppliers_route():
    try:
        include_inactive = request.args.get("includeInactive", "false").lower() == "true"
        suppliers = supplier_service.list_suppliers(
            get_current_tenant_id(),
            search=request.args.get("search"),
            include_inactive=include_inactive,
        )
        return success_response([supplier.to_dict() for supplier in suppliers])
    except ServiceError as e:
        return error_response(e)


@suppliers_bp.get("/<supplier_id>")
@require_auth
@require_permission("VIEW_PARTNERS")
def get_supplier_route(supplier_id: str):
    try:
        supplier = supplier_service.get_supplier(get_current_tenant_id(), supplier_id)
        return success_response(supplier.to_dict())
    except ServiceError as e:
        return error_response(e)


@suppliers_bp.post("")
@require_auth
@require_permission("MANAGE_PARTNERS")
def create_supplier_route():
    """
    Request body:
    {
        "name": "Acme Wholesale",
        "contactPerson": "Jane Roe",   (optional)
        "email": "orders@acme.test",   (optional)
        "phone": "+1 555 0100",        (optional)
        "address": "..."               (optional)
    }
    """
    try:
        supplier = supplier_service.create_supplier(get_current_tenant_id(), request.get_json(silent=True))
        return success_response(supplier.to_dict(), status=201, message="Supplier created successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return internal_error_response()


@suppliers_bp.put("/<supplier_id>")
@require_auth
@require_permission("MANAGE_PARTNERS")
def update_supplier_route(supplier_id: str):
    try:
        supplier = supplier_service.update_supplier(
            get_current_tenant_id(), supplier_id, request.get_json(silent=True)
        )
        return success_response(supplier.to_dict(), message="Supplier updated successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update supplier")
        return internal_error_response()
