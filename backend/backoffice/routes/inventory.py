# Overview: Flask API routes for stock levels and the movement ledger.

"""
Inventory Routes (read-only)

Stock only changes through documents (purchases, sales, returns), so
there are no write endpoints here.

- GET /api/stock             ?productId=&warehouseId=
- GET /api/stock/movements   ?productId=&warehouseId=&refType=&refId=&page=&limit=
"""

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response, internal_error_response
from ..responses import success_response
from ..services import inventory_service
from ..services.tenant_service import get_current_tenant_id


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/stock")


@inventory_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_stock_route():
    try:
        rows = inventory_service.list_stock(get_current_tenant_id(), request.args)
        return success_response([row.to_dict() for row in rows])
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list stock")
        return internal_error_response()


@inventory_bp.get("/movements")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_movements_route():
    try:
        movements, pagination = inventory_service.list_movements(get_current_tenant_id(), request.args)
        return success_response([movement.to_dict() for movement in movements], pagination=pagination)
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list stock movements")
        return internal_error_response()
