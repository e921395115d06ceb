# Overview: Flask API routes for sales; parses input and returns JSON responses.

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response, internal_error_response
from ..responses import success_response
from ..services import sales_service
from ..services.tenant_service import get_current_tenant_id, get_current_user_id


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    try:
        sales, pagination = sales_service.list_sales(get_current_tenant_id(), request.args)
        return success_response([sale.to_dict() for sale in sales], pagination=pagination)
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return internal_error_response()


@sales_bp.get("/<sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: str):
    try:
        sale = sales_service.get_sale(get_current_tenant_id(), sale_id)
        return success_response(sale.to_dict(include_lines=True))
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get sale")
        return internal_error_response()


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Request body:
    {
        "branchId": "<uuid>",
        "warehouseId": "<uuid>",   (optional)
        "customerId": "<uuid>",    (optional, walk-in when absent)
        "discount": 0,             (optional)
        "paidAmount": 0,           (optional)
        "items": [{"productId": "<uuid>", "qty": 1, "price": 10}]
    }
    """
    try:
        sale = sales_service.create_sale(get_current_tenant_id(), get_current_user_id(), request.get_json(silent=True))
        return success_response(sale.to_dict(include_lines=True), status=201, message="Sale created successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return internal_error_response()
