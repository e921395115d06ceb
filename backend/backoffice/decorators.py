# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, g

from .errors import AuthRequiredError, ForbiddenError, TenantContextError, error_response
from .services import session_service, permission_service
from .services.permission_service import PermissionDeniedError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'session_context')


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def authenticate_request(*, require_tenant: bool = True):
    """
    Resolve the bearer token into g.current_user / g.tenant_id.

    Returns an error response tuple, or None when the request may proceed.
    """
    token = _bearer_token()
    if not token:
        return error_response(AuthRequiredError("Authentication required"))

    context = session_service.validate_session(token)
    if not context:
        return error_response(AuthRequiredError("Invalid or expired token"))

    if require_tenant and not context.tenant_id:
        permission_service.log_security_event(
            user_id=context.user.id if context.user else None,
            event_type="TENANT_CONTEXT_MISSING",
            success=False,
            resource=request.path,
            action=request.method,
            reason="Session has no tenant",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
            tenant_id=None,
        )
        return error_response(TenantContextError("Tenant context is required"))

    # Store user and tenant context in Flask g for access in routes
    g.current_user = context.user
    g.tenant_id = context.tenant_id
    g.branch_id = context.branch_id
    g.session_context = context
    g.auth_token = token
    return None


def require_auth(f):
    """
    Require authentication and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.tenant_id: The tenant ID captured at login - REQUIRED
    - g.branch_id: The user's branch ID (may be None)
    - g.session_context: The full SessionContext object

    SECURITY:
    - 401 UNAUTHORIZED: no bearer token, or invalid/expired/revoked token
    - 403 TENANT_CONTEXT_REQUIRED: session without a tenant
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        failure = authenticate_request()
        if failure is not None:
            return failure
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Require a specific permission on the caller's role.

    Must be stacked under @require_auth. Denials are audited with the
    caller's tenant.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return error_response(AuthRequiredError("Authentication required"))

            try:
                permission_service.require_permission(
                    g.current_user,
                    permission_code,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                    tenant_id=g.tenant_id,
                )
            except PermissionDeniedError:
                return error_response(ForbiddenError(f"Permission denied: {permission_code}"))

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def super_admin_gate():
    """
    before_request hook for the /api/superadmin blueprint.

    Runs before any handler in the blueprint:
    - 401 UNAUTHORIZED: not authenticated
    - 403 FORBIDDEN: authenticated but the role lacks PLATFORM_ADMIN
    """
    if request.method == "OPTIONS":
        return None

    failure = authenticate_request(require_tenant=False)
    if failure is not None:
        return failure

    user = g.current_user
    if not permission_service.is_super_admin(user):
        permission_service.log_security_event(
            user_id=user.id,
            event_type="SUPER_ADMIN_DENIED",
            success=False,
            resource=request.path,
            action=request.method,
            reason=f"Missing permission: {permission_service.PLATFORM_ADMIN}",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
            tenant_id=g.tenant_id,
        )
        return error_response(ForbiddenError("Super admin access required"))
    return None
