"""
Pytest configuration and fixtures for the multi-tenant POS platform.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest


@pytest.fixture
def api_client():
    """
    Fixture for Django REST framework API client.
    """
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def make_business(django_user_model):
    """
    Factory building a tenant of a given business type with two branches
    and an owner, a manager and a cashier assigned to the main branch.
    """
    from apps.core.models import Branch, Tenant

    def _make(business_type, name=None):
        name = name or f"{business_type.title()} Shop"
        tenant = Tenant.objects.create(company_name=name, business_type=business_type)
        branch = Branch.objects.create(tenant=tenant, name="Main Branch", phone="0100000000")
        other_branch = Branch.objects.create(tenant=tenant, name="Warehouse", is_warehouse=True)

        def user(role, suffix):
            return django_user_model.objects.create_user(
                username=f"{tenant.slug}-{suffix}",
                password="testpass123",
                tenant=tenant,
                branch=branch,
                role=role,
            )

        return SimpleNamespace(
            tenant=tenant,
            branch=branch,
            other_branch=other_branch,
            owner=user(django_user_model.TENANT_OWNER, "owner"),
            manager=user(django_user_model.TENANT_MANAGER, "manager"),
            employee=user(django_user_model.TENANT_EMPLOYEE, "cashier"),
        )

    return _make


@pytest.fixture
def restaurant(make_business):
    return make_business("restaurant")


@pytest.fixture
def cafe(make_business):
    return make_business("cafe")


@pytest.fixture
def retail(make_business):
    return make_business("retail")


@pytest.fixture
def supermarket(make_business):
    return make_business("supermarket")


@pytest.fixture
def platform_admin(django_user_model):
    return django_user_model.objects.create_user(
        username="platform-admin",
        password="testpass123",
        role=django_user_model.PLATFORM_ADMIN,
        is_staff=True,
    )


@pytest.fixture
def make_variant():
    """
    Factory creating a single-variant product, optionally stocked at a branch.
    """
    from apps.inventory.models import Inventory, Product, ProductVariant

    counter = {"value": 0}

    def _make(
        business,
        name="Item",
        price="10.00",
        stock=None,
        branch=None,
        track_stock=True,
        barcode="",
        min_stock=5,
    ):
        counter["value"] += 1
        sku = f"SKU-{counter['value']:04d}"
        product = Product.objects.create(
            tenant=business.tenant, name=name, sku=sku, track_stock=track_stock
        )
        variant = ProductVariant.objects.create(
            tenant=business.tenant,
            product=product,
            sku=f"{sku}-V",
            barcode=barcode,
            price=Decimal(price),
            cost=Decimal(price) / 2,
        )
        if stock is not None:
            Inventory.objects.create(
                tenant=business.tenant,
                variant=variant,
                branch=branch or business.branch,
                quantity=stock,
                min_stock=min_stock,
            )
        return variant

    return _make


def stock_of(variant, branch):
    """Units on hand for a variant at a branch (0 when there is no row)."""
    from apps.inventory.models import Inventory

    row = Inventory.objects.filter(variant=variant, branch=branch).first()
    return row.quantity if row else 0


@pytest.fixture
def stock():
    return stock_of
