# Overview: Flask CLI command groups for bootstrap, seeding, and inspection.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Database:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed
#   Idempotently insert demo categories and products.
# - python -m flask catalog list [--featured]
#   Print products, newest first.
#
# Users:
# - python -m flask users create --email a@b.dev --password secret1 --first-name Ada --last-name Lovelace [--admin]
#   Create a user (prompts if options are omitted).
# - python -m flask users list
#   List all users with admin/active flags.

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, Product, User
from .services.auth_service import create_user
from .services.product_filters import ProductFilters
from .services.products_service import list_products
from .validation import ValidationError, ConflictError


DEMO_CATEGORIES = [
    # (slug, name, sort_order, parent_slug)
    ("games", "Games", 0, None),
    ("pc-games", "PC Games", 1, "games"),
    ("console-games", "Console Games", 2, "games"),
    ("gift-cards", "Gift Cards", 3, None),
]

DEMO_PRODUCTS = [
    # (slug, name, category_slug, price, original_price, platform, region, featured, stock)
    ("starfall-odyssey-pc", "Starfall Odyssey", "pc-games", "29.99", "59.99", "PC", "GLOBAL", True, 120),
    ("iron-harbor-ps5", "Iron Harbor", "console-games", "49.99", None, "PlayStation", "EU", True, 40),
    ("quiet-fields-pc", "Quiet Fields", "pc-games", "19.99", "24.99", "PC", "GLOBAL", False, 300),
    ("neon-circuit-xbox", "Neon Circuit", "console-games", "39.99", None, "Xbox", "NA", False, 15),
    ("store-credit-25", "Store Credit $25", "gift-cards", "25.00", None, None, "GLOBAL", False, 1000),
]


@click.group('system')
def system_group():
    """Database bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete")


@click.group('catalog')
def catalog_group():
    """Catalog seeding and inspection."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Insert demo categories and products (skips slugs that already exist)."""
    categories = {c.slug: c for c in db.session.query(Category).all()}

    for slug, name, sort_order, parent_slug in DEMO_CATEGORIES:
        if slug in categories:
            click.echo(f"WARN  Category '{slug}' already exists, skipping...")
            continue
        parent = categories.get(parent_slug) if parent_slug else None
        category = Category(
            slug=slug,
            name=name,
            sort_order=sort_order,
            parent_id=parent.id if parent else None,
        )
        db.session.add(category)
        db.session.flush()
        categories[slug] = category
        click.echo(f"PASS Created category: {name}")

    existing = {slug for (slug,) in db.session.query(Product.slug).all()}
    for slug, name, category_slug, price, original_price, platform, region, featured, stock in DEMO_PRODUCTS:
        if slug in existing:
            click.echo(f"WARN  Product '{slug}' already exists, skipping...")
            continue
        db.session.add(Product(
            slug=slug,
            name=name,
            category_id=categories[category_slug].id,
            price=Decimal(price),
            original_price=Decimal(original_price) if original_price else None,
            platform=platform,
            region=region,
            featured=featured,
            stock_quantity=stock,
            status="active",
        ))
        click.echo(f"PASS Created product: {name} ({price})")

    db.session.commit()
    click.echo("DONE Catalog seeded")


@catalog_group.command('list')
@click.option('--featured', is_flag=True, help='Only featured products')
@click.option('--limit', default=20, show_default=True, type=click.IntRange(1, 100))
@with_appcontext
def list_catalog(featured, limit):
    """Print products, newest first."""
    filters = ProductFilters(featured=True if featured else None, limit=limit)
    for p in list_products(filters):
        flag = "*" if p["featured"] else " "
        click.echo(f"{flag} {p['id']:>5}  {p['slug']:<32} {p['price']:>10.2f}  {p['status']}")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('create')
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--first-name', prompt=True)
@click.option('--last-name', prompt=True)
@click.option('--username', default=None)
@click.option('--admin', 'is_admin', is_flag=True, help='Grant admin flag')
@with_appcontext
def create_user_command(email, password, first_name, last_name, username, is_admin):
    """Create a user with a bcrypt-hashed password."""
    try:
        user = create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            username=username,
            is_admin=is_admin,
        )
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user {user.email} (ID: {user.id}, admin={user.is_admin})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for u in users:
        click.echo(
            f"{u.id:>5}  {u.email:<40} admin={u.is_admin!s:<5} active={u.is_active!s:<5} "
            f"last_login={u.last_login or '-'}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(users_group)
