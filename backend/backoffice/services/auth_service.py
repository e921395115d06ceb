# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service with Multi-Tenant Support

Every action must be attributable. Uses bcrypt for password hashing and
validates password strength.

MULTI-TENANT: Users belong to exactly one tenant. Username/email
uniqueness is tenant-scoped, so login names the tenant by its code.
"""

import re

import bcrypt

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User, Role, Tenant
from ..time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    code = "WEAK_PASSWORD"


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against bcrypt hash (timing-safe via bcrypt.checkpw)."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(
    *,
    tenant_id: str,
    username: str,
    email: str,
    password: str,
    role_name: str | None = None,
    branch_id: str | None = None,
) -> User:
    """
    Create a user inside a tenant. Caller commits.

    Raises ConflictError on duplicate username/email within the tenant.
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username:
        raise ValidationError("username is required")
    if not email:
        raise ValidationError("email is required")

    tenant = db.session.query(Tenant).filter_by(id=tenant_id).first()
    if tenant is None:
        raise NotFoundError("Tenant not found", code="TENANT_NOT_FOUND")

    duplicate = db.session.query(User).filter(
        User.tenant_id == tenant_id,
        (User.username == username) | (User.email == email),
    ).first()
    if duplicate:
        raise ConflictError("Username or email already exists in this tenant", code="DUPLICATE")

    role = None
    if role_name:
        role = db.session.query(Role).filter_by(tenant_id=tenant_id, name=role_name).first()
        if role is None:
            raise NotFoundError(f"Role '{role_name}' not found", code="ROLE_NOT_FOUND")

    user = User(
        tenant_id=tenant_id,
        branch_id=branch_id,
        role_id=role.id if role else None,
        username=username,
        email=email,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()
    return user


def authenticate(tenant_code: str, username: str, password: str) -> User | None:
    """
    Resolve tenant by code, then user by username or email within it.

    Returns None on any mismatch (unknown tenant, unknown user, wrong
    password, inactive user). Inactive tenants are rejected too, except the
    system tenant, which always admits its super admins.
    """
    if not tenant_code or not username or not password:
        return None

    tenant = db.session.query(Tenant).filter(
        db.func.upper(Tenant.code) == tenant_code.strip().upper()
    ).first()
    if tenant is None or (not tenant.is_active and not tenant.is_system):
        return None

    login = username.strip()
    user = db.session.query(User).filter(
        User.tenant_id == tenant.id,
        (User.username == login) | (User.email == login.lower()),
    ).first()
    if user is None or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
