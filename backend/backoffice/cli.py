# Overview: Flask CLI command groups for bootstrap, tenant onboarding and permission repair.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--password "Password123!"]
#   Idempotent: creates tables, the system tenant, its super admin role and a superadmin user.
#
# Tenant management:
# - python -m flask tenants list
# - python -m flask tenants create --name "Acme Retail" --code ACME [--admin-username admin ...]
# - python -m flask tenants activate ACME
# - python -m flask tenants deactivate ACME
#
# Users:
# - python -m flask users create --tenant ACME --username jane --email jane@acme.test --password "..." --role manager
#
# Permissions:
# - python -m flask perms sync
#   Sync permission definitions, default role grants, and grant PLATFORM_ADMIN to
#   system-tenant roles that older deployments recognised by name.

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import Role, Tenant, User
from .services import permission_service, superadmin_service
from .services.auth_service import create_user
from .services.concurrency import unit_of_work


SYSTEM_TENANT_CODE = "SYSTEM"


def _tenant_by_code(code: str) -> Tenant:
    tenant = db.session.query(Tenant).filter(db.func.upper(Tenant.code) == code.strip().upper()).first()
    if tenant is None:
        raise click.ClickException(f"Tenant '{code}' not found")
    return tenant


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--username', default='superadmin', show_default=True, help='Super admin username')
@click.option('--email', default='superadmin@backoffice.local', show_default=True, help='Super admin email')
@click.option('--password', default='Password123!', show_default=True, help='Super admin password')
@with_appcontext
def init_system(username, email, password):
    """
    Initialize the platform: tables, permissions, system tenant, super admin role and user.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing system...")

    db.create_all()
    click.echo("PASS Tables ready")

    with unit_of_work():
        count = permission_service.initialize_permissions()
    click.echo(f"PASS Permissions synced ({count} created)")

    tenant = db.session.query(Tenant).filter_by(code=SYSTEM_TENANT_CODE).first()
    if tenant is None:
        with unit_of_work():
            tenant = Tenant(name="Platform", code=SYSTEM_TENANT_CODE, is_active=True, is_system=True)
            db.session.add(tenant)
        click.echo(f"PASS Created system tenant: {tenant.code} (ID: {tenant.id})")
    else:
        click.echo(f"PASS Using existing system tenant: {tenant.code} (ID: {tenant.id})")

    with unit_of_work():
        role = permission_service.create_super_admin_role(tenant.id)
    click.echo(f"PASS Super admin role ready: {role.name}")

    existing = db.session.query(User).filter_by(tenant_id=tenant.id, username=username).first()
    if existing:
        click.echo(f"SKIP User already exists: {username}")
        return

    try:
        with unit_of_work():
            create_user(
                tenant_id=tenant.id,
                username=username,
                email=email,
                password=password,
                role_name=role.name,
            )
    except ServiceError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created super admin: {username} (tenant code {SYSTEM_TENANT_CODE})")


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    tenants = db.session.query(Tenant).order_by(Tenant.created_at.asc()).all()
    if not tenants:
        click.echo("No tenants found")
        return
    for tenant in tenants:
        status = "active" if tenant.is_active else "inactive"
        system = " [system]" if tenant.is_system else ""
        click.echo(f"{tenant.code:<12} {tenant.name:<30} {status}{system}  {tenant.id}")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--admin-username', help='First admin username')
@click.option('--admin-email', help='First admin email')
@click.option('--admin-password', help='First admin password')
@with_appcontext
def create_tenant_cli(name, code, admin_username, admin_email, admin_password):
    """Onboard a tenant with Main Branch, default roles and an optional admin."""
    payload = {"name": name, "code": code}
    if admin_username or admin_email or admin_password:
        payload.update({
            "adminUsername": admin_username,
            "adminEmail": admin_email,
            "adminPassword": admin_password,
        })
    try:
        tenant = superadmin_service.create_tenant(payload)
    except ServiceError as e:
        raise click.ClickException(f"{e.code}: {e.message}")
    click.echo(f"PASS Created tenant: {tenant.name} (Code: {tenant.code}, ID: {tenant.id})")


def _set_active(code: str, active: bool) -> None:
    tenant = _tenant_by_code(code)
    try:
        superadmin_service.set_tenant_active(tenant.id, active)
    except ServiceError as e:
        raise click.ClickException(f"{e.code}: {e.message}")
    click.echo(f"PASS Tenant {tenant.code} {'activated' if active else 'deactivated'}")


@tenants_group.command('activate')
@click.argument('code')
@with_appcontext
def activate_tenant_cli(code):
    _set_active(code, True)


@tenants_group.command('deactivate')
@click.argument('code')
@with_appcontext
def deactivate_tenant_cli(code):
    _set_active(code, False)


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--tenant', 'tenant_code', required=True, help='Tenant code')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', default='cashier', show_default=True, help='Role name within the tenant')
@with_appcontext
def create_user_cli(tenant_code, username, email, password, role):
    tenant = _tenant_by_code(tenant_code)
    try:
        with unit_of_work():
            user = create_user(
                tenant_id=tenant.id,
                username=username,
                email=email,
                password=password,
                role_name=role,
            )
    except ServiceError as e:
        raise click.ClickException(f"{e.code}: {e.message}")
    click.echo(f"PASS Created user: {user.username} ({role}) in {tenant.code}")


@click.group('perms')
def perms_group():
    """Permission inspection and repair commands."""


@perms_group.command('sync')
@with_appcontext
def sync_permissions():
    """
    Idempotent permission repair.

    - creates missing Permission rows
    - re-grants default permissions to admin/manager/cashier of every tenant
    - grants PLATFORM_ADMIN to system-tenant roles whose names older
      deployments treated as super admin
    """
    with unit_of_work():
        created = permission_service.initialize_permissions()
        tenants = db.session.query(Tenant).all()
        for tenant in tenants:
            if tenant.is_system:
                permission_service.create_super_admin_role(tenant.id)
                migrated = permission_service.migrate_legacy_super_admin_roles(tenant.id)
                for role in migrated:
                    click.echo(f"PASS Granted PLATFORM_ADMIN to legacy role '{role.name}' ({tenant.code})")
            else:
                permission_service.create_default_roles(tenant.id)
    role_count = db.session.query(Role).count()
    click.echo(f"PASS Synced {created} new permissions across {len(tenants)} tenants ({role_count} roles)")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
