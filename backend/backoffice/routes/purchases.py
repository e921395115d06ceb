# Overview: Flask API routes for purchase operations; parses input and returns JSON responses.

"""
Purchase API Routes

SECURITY:
- VIEW_PURCHASES for list/detail
- MANAGE_PURCHASES for create/update/delete
- RECORD_PURCHASE_PAYMENT for payments
All lookups are scoped to the caller's tenant.
"""

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response, internal_error_response
from ..responses import success_response
from ..services import purchase_service
from ..services.tenant_service import get_current_tenant_id, get_current_user_id


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
@require_auth
@require_permission("VIEW_PURCHASES")
def list_purchases_route():
    """
    Query parameters:
    - page, limit, sortBy (createdAt|purchaseNumber|total), sortOrder (asc|desc)
    - supplierId, branchId, status, paymentStatus, startDate, endDate
    - search: purchase number, reference number or supplier name
    """
    try:
        purchases, pagination = purchase_service.list_purchases(get_current_tenant_id(), request.args)
        return success_response([purchase.to_dict() for purchase in purchases], pagination=pagination)
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list purchases")
        return internal_error_response()


@purchases_bp.get("/<purchase_id>")
@require_auth
@require_permission("VIEW_PURCHASES")
def get_purchase_route(purchase_id: str):
    try:
        purchase = purchase_service.get_purchase(get_current_tenant_id(), purchase_id)
        return success_response(purchase.to_dict(include_lines=True))
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get purchase")
        return internal_error_response()


@purchases_bp.post("")
@require_auth
@require_permission("MANAGE_PURCHASES")
def create_purchase_route():
    """
    Create a purchase and receive it into stock.

    Request body:
    {
        "branchId": "<uuid>",
        "warehouseId": "<uuid>",        (optional, default: branch's first warehouse)
        "supplierId": "<uuid>",
        "referenceNumber": "INV-8812",  (optional)
        "status": "RECEIVED",           (optional: PENDING|ORDERED|RECEIVED)
        "discount": 0,                  (optional)
        "shippingCost": 0,              (optional)
        "note": "...",                  (optional)
        "items": [{"productId": "<uuid>", "qty": 4, "price": 2, "discount": 0, "tax": 1}]
    }

    Returns:
        201: Purchase created
        400: Invalid input
        404: BRANCH_NOT_FOUND, WAREHOUSE_NOT_FOUND, SUPPLIER_NOT_FOUND, PRODUCT_NOT_FOUND
    """
    try:
        purchase = purchase_service.create_purchase(
            get_current_tenant_id(), get_current_user_id(), request.get_json(silent=True)
        )
        return success_response(
            purchase.to_dict(include_lines=True), status=201, message="Purchase created successfully"
        )
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return internal_error_response()


@purchases_bp.put("/<purchase_id>")
@require_auth
@require_permission("MANAGE_PURCHASES")
def update_purchase_route(purchase_id: str):
    """Only status, note and referenceNumber are applied."""
    try:
        purchase = purchase_service.update_purchase(
            get_current_tenant_id(), purchase_id, request.get_json(silent=True)
        )
        return success_response(purchase.to_dict(include_lines=True), message="Purchase updated successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update purchase")
        return internal_error_response()


@purchases_bp.delete("/<purchase_id>")
@require_auth
@require_permission("MANAGE_PURCHASES")
def delete_purchase_route(purchase_id: str):
    """
    Returns:
        200: Deleted
        404: PURCHASE_NOT_FOUND
        409: PURCHASE_ALREADY_RECEIVED, PURCHASE_HAS_RETURNS
    """
    try:
        purchase_service.delete_purchase(get_current_tenant_id(), purchase_id)
        return success_response(message="Purchase deleted successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete purchase")
        return internal_error_response()


@purchases_bp.post("/<purchase_id>/payments")
@require_auth
@require_permission("RECORD_PURCHASE_PAYMENT")
def add_payment_route(purchase_id: str):
    """
    Request body:
    {
        "amount": 50.0,
        "paymentMethod": "CASH",   (optional, default: CASH)
        "reference": "...",        (optional)
        "note": "..."              (optional)
    }

    Returns:
        201: Payment recorded; body is the updated purchase
        400: amount missing, zero or negative
        404: PURCHASE_NOT_FOUND
    """
    try:
        purchase = purchase_service.add_payment(
            get_current_tenant_id(), purchase_id, get_current_user_id(), request.get_json(silent=True)
        )
        return success_response(
            purchase.to_dict(include_lines=True), status=201, message="Payment recorded successfully"
        )
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record purchase payment")
        return internal_error_response()
