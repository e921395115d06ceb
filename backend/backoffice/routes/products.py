# Overview: Flask API routes for product operations; parses input and returns JSON responses.

"""
Product Routes

SECURITY: All routes require authentication.
- View operations require VIEW_INVENTORY permission
- Create/update require MANAGE_PRODUCTS permission
"""

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response, internal_error_response
from ..responses import success_response
from ..services import product_service
from ..services.tenant_service import get_current_tenant_id


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_products_route():
    """
    Query parameters:
    - search: matches name or SKU
    - includeInactive: true to include deactivated products
    """
    try:
        include_inactive = request.args.get("includeInactive", "false").lower() == "true"
        products = product_service.list_products(
            get_current_tenant_id(),
            search=request.args.get("search"),
            include_inactive=include_inactive,
        )
        return success_response([product.to_dict() for product in products])
    except ServiceError as e:
        return error_response(e)


@products_bp.get("/<product_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_product_route(product_id: str):
    try:
        product = product_service.get_product(get_current_tenant_id(), product_id)
        return success_response(product.to_dict())
    except ServiceError as e:
        return error_response(e)


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    """
    Request body:
    {
        "sku": "SKU-001",
        "name": "Widget",
        "price": 19.99,     (optional, default: 0)
        "cost": 7.5,        (optional, default: 0)
        "image": "https://..."  (optional)
    }

    Returns:
        201: Product created
        400: Invalid input
        409: DUPLICATE SKU within the tenant
    """
    try:
        product = product_service.create_product(get_current_tenant_id(), request.get_json(silent=True))
        return success_response(product.to_dict(), status=201, message="Product created successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return internal_error_response()


@products_bp.put("/<product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: str):
    try:
        product = product_service.update_product(get_current_tenant_id(), product_id, request.get_json(silent=True))
        return success_response(product.to_dict(), message="Product updated successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return internal_error_response()
