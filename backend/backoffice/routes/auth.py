# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/login   {tenantCode, username, password} -> bearer token
- POST /api/auth/logout  revokes the caller's token
- GET  /api/auth/me      the caller, their tenant and permissions

Users are created by administrators (CLI: flask users create, or tenant
onboarding); there is no self-registration.
"""

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth
from ..errors import AuthRequiredError, ServiceError, ValidationError, error_response, internal_error_response
from ..responses import success_response
from ..services import auth_service, permission_service, session_service
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Request body:
    {
        "tenantCode": "ACME",
        "username": "admin",      (username or email)
        "password": "..."
    }

    Returns:
        200: {token, expiresAt, user}
        400: Missing fields
        401: Invalid credentials, inactive user or inactive tenant
    """
    try:
        data = request.get_json(silent=True) or {}
        tenant_code = data.get("tenantCode")
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([tenant_code, username, password]):
            raise ValidationError("tenantCode, username/email and password required")

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(tenant_code, username, password)
        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action=request.method,
                reason=f"Invalid credentials for {username!r} in {tenant_code!r}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return error_response(AuthRequiredError("Invalid credentials"))

        session, token = session_service.create_session(user, user_agent=user_agent, ip_address=ip_address)

        return success_response({
            "token": token,
            "expiresAt": to_utc_z(session.expires_at),
            "user": user.to_dict(),
        })

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to log in")
        return internal_error_response()


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.auth_token, reason="User logout")
        return success_response(message="Logged out")
    except Exception:
        current_app.logger.exception("Failed to log out")
        return internal_error_response()


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return success_response({
        "user": user.to_dict(),
        "tenantId": g.tenant_id,
        "branchId": g.branch_id,
        "permissions": sorted(permission_service.get_user_permissions(user)),
    })
