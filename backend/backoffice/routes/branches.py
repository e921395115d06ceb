# Overview: Flask API routes for branches and warehouses.

"""
Branch Routes

- GET  /api/branches                         any authenticated user
- POST /api/branches                         MANAGE_BRANCHES
- GET  /api/branches/<id>/warehouses         any authenticated user
- POST /api/branches/<id>/warehouses         MANAGE_BRANCHES
"""

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_permission
from ..errors import ServiceError, error_response, internal_error_response
from ..responses import success_response
from ..services import branch_service
from ..services.tenant_service import get_current_tenant_id, require_branch


branches_bp = Blueprint("branches", __name__, url_prefix="/api/branches")


@branches_bp.get("")
@require_auth
def list_branches_route():
    try:
        branches = branch_service.list_branches(get_current_tenant_id())
        return success_response([branch.to_dict() for branch in branches])
    except ServiceError as e:
        return error_response(e)


@branches_bp.post("")
@require_auth
@require_permission("MANAGE_BRANCHES")
def create_branch_route():
    """
    Create a branch (and its default warehouse).

    Request body: {"name": "Downtown", "code": "DT", "address": "..."}

    Returns:
        201: Branch created
        400: Invalid input
        409: DUPLICATE branch name
    """
    try:
        branch = branch_service.create_branch(get_current_tenant_id(), request.get_json(silent=True))
        return success_response(branch.to_dict(), status=201, message="Branch created successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create branch")
        return internal_error_response()


@branches_bp.get("/<branch_id>/warehouses")
@require_auth
def list_warehouses_route(branch_id: str):
    try:
        tenant_id = get_current_tenant_id()
        branch = require_branch(branch_id, tenant_id)
        warehouses = branch_service.list_warehouses(tenant_id, branch_id=branch.id)
        return success_response([warehouse.to_dict() for warehouse in warehouses])
    except ServiceError as e:
        return error_response(e)


@branches_bp.post("/<branch_id>/warehouses")
@require_auth
@require_permission("MANAGE_BRANCHES")
def create_warehouse_route(branch_id: str):
    try:
        warehouse = branch_service.create_warehouse(
            get_current_tenant_id(), branch_id, request.get_json(silent=True)
        )
        return success_response(warehouse.to_dict(), status=201, message="Warehouse created successfully")
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create warehouse")
        return internal_error_response()
