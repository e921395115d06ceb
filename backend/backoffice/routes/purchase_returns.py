# Overview: Flask API routes for purchase returns; parses input and returns JSON responses.

"""
Purchase Return API Routes

WHY: Send damaged or surplus goods back to the supplier and reduce what
we owe them.

DESIGN:
- Create takes the lines; stock leaves the purchase's warehouse and the
  supplier balance drops by the return total
- Update applies reason and supplierId only
- Delete removes the document but leaves stock and balance as they are

SECURITY:
- VIEW_RETURNS for list/detail, MANAGE_RETURNS for writes
- Every lookup is scoped to the caller's tenant; another tenant's return
  is indistinguishable from a missing one (404 RETURN_NOT_FOUND)
"""

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response, internal_error_response
from ..responses import success_response
from ..services import purchase_return_service
from ..services.tenant_service import get_current_tenant_id, get_current_user_id


purchase_returns_bp = Blueprint("purchase_returns", __name__, url_prefix="/api/purchase-returns")


@purchase_returns_bp.get("")
@require_auth
@require_permission("VIEW_RETURNS")
def list_purchase_returns_route():
    """
    Query parameters:
    - page (default: 1), limit (default: 10, max: 100)
    - sortBy: createdAt|returnNumber|total (default: createdAt)
    - sortOrder: asc|desc (default: desc)
    - supplierId, purchaseId, status, startDate, endDate
    - search: return number or supplier name

    Returns:
        200: {success, data[], pagination: {page, limit, total, totalPages}}
        400: Invalid query parameter
    """
    try:
        records, pagination = purchase_return_service.list_returns(get_current_tenant_id(), request.args)
        return success_response([record.to_dict() for record in records], pagination=pagination)
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list purchase returns")
        return internal_error_response()


@purchase_returns_bp.get("/<return_id>")
@require_auth
@require_permission("VIEW_RETURNS")
def get_purchase_return_route(return_id: str):
    try:
        record = purchase_return_service.get_return(get_current_tenant_id(), return_id)
        return success_response(record.to_dict(include_origin=True))
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get purchase return")
        return internal_error_response()


@purchase_returns_bp.post("")
@require_auth
@require_permission("MANAGE_RETURNS")
def create_purchase_return_route():
    """
    Request body:
    {
        "purchaseId": "<uuid>",
        "supplierId": "<uuid>",     (optional, default: the purchase's supplier)
        "items": [{"productId": "<uuid>", "qty": 2, "price": 10}],
        "reason": "Damaged",        (optional)
        "note": "..."               (optional)
    }

    Returns:
        201: Return created
        400: Invalid input (nothing written)
        404: PURCHASE_NOT_FOUND, SUPPLIER_NOT_FOUND, PRODUCT_NOT_FOUND
    """
    try:
        record = purchase_return_service.create_return(
            get_current_tenant_id(), get_current_user_id(), request.get_json(silent=True)
        )
        return success_response(record.to_dict(), status=201, message="Purchase return created successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create purchase return")
        return internal_error_response()


@purchase_returns_bp.put("/<return_id>")
@require_auth
@require_permission("MANAGE_RETURNS")
def update_purchase_return_route(return_id: str):
    """
    Request body: {"reason"?: "...", "supplierId"?: "<uuid>"}. Other keys are ignored.
    """
    try:
        record = purchase_return_service.update_return(
            get_current_tenant_id(), return_id, request.get_json(silent=True)
        )
        return success_response(record.to_dict(), message="Purchase return updated successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update purchase return")
        return internal_error_response()


@purchase_returns_bp.delete("/<return_id>")
@require_auth
@require_permission("MANAGE_RETURNS")
def delete_purchase_return_route(return_id: str):
    try:
        purchase_return_service.delete_return(get_current_tenant_id(), return_id)
        return success_response(message="Purchase return deleted successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete purchase return")
        return internal_error_response()
