"""
Seed script — create a development organization for local testing.

Registers a ``flask seed-dev-org`` CLI command that creates a local
admin user, an organization with the standard sample departments, and
a handful of licenses with usage samples.  Sign in with the
``/auth/dev-login`` bypass route to use it without an Entra ID app
registration.

Usage::

    flask seed-dev-org                          # Create with defaults
    flask seed-dev-org --email me@example.com   # Custom admin email
    flask seed-dev-org --domain acme.test       # Custom org domain
    flask seed-dev-org --no-licenses            # Departments only

Prerequisites:
    - Tables must exist (``flask db upgrade`` or ``flask init-db``).
"""

from datetime import timedelta
from decimal import Decimal

import click
from flask.cli import with_appcontext

from app.exceptions import ConflictError
from app.models.organization import Organization
from app.models.user import User
from app.services import license_service, organization_service, user_service
from app.utils import utcnow

# -- Default values for the dev organization -------------------------------
_DEFAULT_EMAIL = "dev.admin@localhost"
_DEFAULT_ORG_NAME = "Dev Organization"
_DEFAULT_DOMAIN = "dev.localhost"

# (name, vendor, category, department, seats, used, cost, cycle)
_SAMPLE_LICENSES = [
    ("GitHub Enterprise", "GitHub", "Development", "Engineering", 40, 36, "21.00", "monthly"),
    ("Figma Professional", "Figma", "Design", "Marketing", 15, 9, "15.00", "monthly"),
    ("Salesforce Sales Cloud", "Salesforce", "CRM", "Sales", 25, 25, "1650.00", "annual"),
    ("BambooHR", "BambooHR", "HR", "HR", 10, 4, "8.25", "monthly"),
    ("NetSuite", "Oracle", "Finance", "Finance", 8, 8, "1200.00", "annual"),
    ("Slack Business+", "Slack", "Communication", None, 120, 104, "12.50", "monthly"),
]


@click.command("seed-dev-org")
@click.option(
    "--email",
    default=_DEFAULT_EMAIL,
    show_default=True,
    help="Email address for the dev admin user.",
)
@click.option("--name", "org_name", default=_DEFAULT_ORG_NAME, show_default=True)
@click.option("--domain", default=_DEFAULT_DOMAIN, show_default=True)
@click.option(
    "--licenses/--no-licenses",
    "with_licenses",
    default=True,
    show_default=True,
    help="Also create sample licenses and usage samples.",
)
@with_appcontext
def seed_dev_org_command(email: str, org_name: str, domain: str, with_licenses: bool):
    """
    Create a dev admin, their organization and sample data.

    Safe to rerun: an existing user is reused and an existing
    organization with the same domain is left untouched.
    """
    click.echo("=" * 60)
    click.echo("  LicenseLens — Seed Dev Organization")
    click.echo("=" * 60)

    # -- Step 1: Admin user ------------------------------------------------
    click.echo("\n[1/3] Creating dev admin user...")
    user = User.query.filter(User.email.ilike(email)).first()
    if user is None:
        user = user_service.provision_user(email=email, first_name="Dev", last_name="Admin")
        click.secho(f"      ✓ Created user <{email}> (id={user.id})", fg="green")
    else:
        click.secho(f"      ✓ User '{email}' already exists (id={user.id}).", fg="green")

    # -- Step 2: Organization ----------------------------------------------
    click.echo("\n[2/3] Creating organization...")
    try:
        organization = organization_service.create_organization(
            user_id=user.id,
            name=org_name,
            domain=domain,
            industry="Technology",
            employee_count=250,
        )
    except ConflictError:
        organization = Organization.query.filter_by(domain=domain.lower()).first()
        click.secho(
            f"      ✓ Organization '{domain}' already exists (id={organization.id}).",
            fg="green",
        )
        click.echo("        Skipping sample data.")
        return

    click.secho(
        f"      ✓ Created {organization.name} (id={organization.id}) with "
        f"{len(organization_service.get_departments(organization.id))} departments",
        fg="green",
    )

    # -- Step 3: Licenses and usage ----------------------------------------
    click.echo("\n[3/3] Creating sample licenses...")
    if not with_licenses:
        click.echo("      Skipped (--no-licenses).")
        return

    now = utcnow()
    departments = {
        dept.name: dept.id
        for dept in organization_service.get_departments(organization.id)
    }
    for name, vendor, category, dept, seats, used, cost, cycle in _SAMPLE_LICENSES:
        license_ = license_service.add_license(
            organization.id,
            name=name,
            vendor=vendor,
            category=category,
            license_type="per_user",
            total_seats=seats,
            used_seats=used,
            cost_per_seat=Decimal(cost),
            billing_cycle=cycle,
            purchase_date=now - timedelta(days=300),
            renewal_date=now + timedelta(days=20 if cycle == "monthly" else 65),
            department_id=departments.get(dept),
            user_id=user.id,
        )
        # One recent sample from the admin per license in use.
        if used:
            license_service.record_license_usage(
                organization.id, license_.id, user.id, now - timedelta(days=2), 6
            )
        click.echo(f"      ✓ {name} ({used}/{seats} seats)")

    click.echo("\n" + "=" * 60)
    click.secho("  Dev organization is ready.", fg="green", bold=True)
    click.echo(f"  Admin:        {user.email}")
    click.echo(f"  Organization: {organization.name} (id={organization.id})")
    click.echo("=" * 60)
    click.echo("\n  → Start the app with FLASK_ENV=development, then visit")
    click.echo("    http://localhost:5000/auth/dev-login to sign in.")
    click.echo(f"  → Try: flask generate-insights --org {organization.id}\n")


def register_seed_commands(app):
    """Register seed-related CLI commands with the Flask application."""
    app.cli.add_command(seed_dev_org_command)
