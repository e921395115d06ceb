# Overview: Flask API routes for sales returns; parses input and returns JSON responses.

"""
Sales Return API Routes

Mirror of the purchase return routes with saleId/branchId/customerId in
place of purchaseId/supplierId. Returned goods go back into the sale's
warehouse.
"""

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response, internal_error_response
from ..responses import success_response
from ..services import sales_return_service
from ..services.tenant_service import get_current_tenant_id, get_current_user_id


sales_returns_bp = Blueprint("sales_returns", __name__, url_prefix="/api/sales-returns")


@sales_returns_bp.get("")
@require_auth
@require_permission("VIEW_RETURNS")
def list_sales_returns_route():
    """
    Query parameters: page, limit, sortBy, sortOrder, customerId, saleId,
    branchId, status, startDate, endDate, search (return number or customer name)
    """
    try:
        records, pagination = sales_return_service.list_returns(get_current_tenant_id(), request.args)
        return success_response([record.to_dict() for record in records], pagination=pagination)
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales returns")
        return internal_error_response()


@sales_returns_bp.get("/<return_id>")
@require_auth
@require_permission("VIEW_RETURNS")
def get_sales_return_route(return_id: str):
    try:
        record = sales_return_service.get_return(get_current_tenant_id(), return_id)
        return success_response(record.to_dict(include_origin=True))
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get sales return")
        return internal_error_response()


@sales_returns_bp.post("")
@require_auth
@require_permission("MANAGE_RETURNS")
def create_sales_return_route():
    """
    Request body:
    {
        "saleId": "<uuid>",
        "branchId": "<uuid>",      (optional, default: the sale's branch)
        "customerId": "<uuid>",    (optional, default: the sale's customer)
        "items": [{"productId": "<uuid>", "qty": 2, "price": 10}],
        "reason": "Wrong size",    (optional)
        "note": "..."              (optional)
    }

    Returns:
        201: Return created
        400: Invalid input (nothing written)
        404: SALE_NOT_FOUND, BRANCH_NOT_FOUND, CUSTOMER_NOT_FOUND, PRODUCT_NOT_FOUND
    """
    try:
        record = sales_return_service.create_return(
            get_current_tenant_id(), get_current_user_id(), request.get_json(silent=True)
        )
        return success_response(record.to_dict(), status=201, message="Sales return created successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sales return")
        return internal_error_response()


@sales_returns_bp.put("/<return_id>")
@require_auth
@require_permission("MANAGE_RETURNS")
def update_sales_return_route(return_id: str):
    try:
        record = sales_return_service.update_return(get_current_tenant_id(), return_id, request.get_json(silent=True))
        return success_response(record.to_dict(), message="Sales return updated successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update sales return")
        return internal_error_response()


@sales_returns_bp.delete("/<return_id>")
@require_auth
@require_permission("MANAGE_RETURNS")
def delete_sales_return_route(return_id: str):
    try:
        sales_return_service.delete_return(get_current_tenant_id(), return_id)
        return success_response(message="Sales return deleted successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sales return")
        return internal_error_response()
