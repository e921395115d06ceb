# Overview: Flask API routes for customer operations.

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response, internal_error_response
from ..responses import success_response
from ..services import customer_service
from ..services.tenant_service import get_current_tenant_id


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("VIEW_PARTNERS")
def list_customers_route():
    try:
        customers = customer_service.list_customers(get_current_tenant_id(), search=request.args.get("search"))
        return success_response([customer.to_dict() for customer in customers])
    except ServiceError as e:
        return error_response(e)


@customers_bp.get("/<customer_id>")
@require_auth
@require_permission("VIEW_PARTNERS")
def get_customer_route(customer_id: str):
    try:
        customer = customer_service.get_customer(get_current_tenant_id(), customer_id)
        return success_response(customer.to_dict())
    except ServiceError as e:
        return error_response(e)


@customers_bp.post("")
@require_auth
@require_permission("MANAGE_PARTNERS")
def create_customer_route():
    try:
        customer = customer_service.create_customer(get_current_tenant_id(), request.get_json(silent=True))
        return success_response(customer.to_dict(), status=201, message="Customer created successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return internal_error_response()
