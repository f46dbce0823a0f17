"""
Tests for feature gating by business type and per-tenant overrides.
"""

from django.urls import reverse

import pytest
from rest_framework import permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.test import APIRequestFactory, force_authenticate
from waffle.models import Flag

from apps.core.feature_flags import (
    FeatureFlagHistory,
    TenantFeatureFlag,
    clear_feature_override,
    get_effective_features,
    set_feature_override,
)
from apps.core.permissions import HasTenantAccess, require_any_feature


@pytest.mark.django_db
class TestFeatureGating:
    """Endpoints answer 403 with a structured body when the business type lacks a feature."""

    def test_retail_cannot_list_tables(self, api_client, retail):
        api_client.force_authenticate(retail.owner)
        response = api_client.get(reverse("restaurant:table_list"))

        assert response.status_code == 403
        assert response.json() == {
            "detail": "هذه الميزة غير متاحة لنوع نشاطك",
            "code": "feature_not_available",
            "business_type": "retail",
            "feature": "tables",
        }

    def test_supermarket_cannot_open_kitchen_display(self, api_client, supermarket):
        api_client.force_authenticate(supermarket.employee)
        response = api_client.get(reverse("restaurant:kitchen_orders"))

        assert response.status_code == 403
        assert response.json()["feature"] == "kitchen"

    def test_restaurant_cannot_list_installments(self, api_client, restaurant):
        api_client.force_authenticate(restaurant.owner)
        response = api_client.get(reverse("sales:installment_list"))

        assert response.status_code == 403
        assert response.json()["business_type"] == "restaurant"

    def test_cafe_lists_tables(self, api_client, cafe):
        api_client.force_authenticate(cafe.employee)
        response = api_client.get(reverse("restaurant:table_list"))
        assert response.status_code == 200

    @pytest.mark.parametrize("business_type", ["restaurant", "cafe", "retail", "supermarket"])
    def test_transfers_available_to_every_business(self, api_client, make_business, business_type):
        business = make_business(business_type)
        api_client.force_authenticate(business.owner)
        response = api_client.get(reverse("inventory:transfer_list"))
        assert response.status_code == 200

    def test_supermarket_rejects_multi_variant_product(self, api_client, supermarket):
        api_client.force_authenticate(supermarket.owner)
        response = api_client.post(
            reverse("inventory:product_list"),
            {
                "name": "Milk",
                "sku": "MILK",
                "variants": [
                    {"sku": "MILK-1L", "price": "20.00"},
                    {"sku": "MILK-2L", "price": "38.00"},
                ],
            },
            format="json",
        )

        assert response.status_code == 403
        assert response.json()["feature"] == "variants"

    def test_retail_creates_multi_variant_product(self, api_client, retail):
        api_client.force_authenticate(retail.owner)
        response = api_client.post(
            reverse("inventory:product_list"),
            {
                "name": "T-Shirt",
                "sku": "TSHIRT",
                "variants": [
                    {"sku": "TSHIRT-M-RED", "size": "M", "color": "Red", "price": "150.00"},
                    {"sku": "TSHIRT-L-RED", "size": "L", "color": "Red", "price": "150.00"},
                ],
            },
            format="json",
        )

        assert response.status_code == 201
        assert len(response.json()["variants"]) == 2


@pytest.mark.django_db
class TestFeatureOverrides:
    """Waffle-backed overrides on top of the business-type defaults."""

    def test_override_enables_kitchen_for_retail(self, retail):
        set_feature_override(retail.tenant, "kitchen", True, notes="pilot")

        features = get_effective_features(retail.tenant)
        assert features["kitchen"] is True
        assert features["tables"] is False
        assert Flag.objects.filter(name="pos_kitchen").exists()

    def test_override_disables_tables_for_restaurant(self, api_client, restaurant):
        set_feature_override(restaurant.tenant, "tables", False)

        api_client.force_authenticate(restaurant.owner)
        response = api_client.get(reverse("restaurant:table_list"))
        assert response.status_code == 403

    def test_override_only_touches_one_tenant(self, make_business):
        first = make_business("retail", name="First Shop")
        second = make_business("retail", name="Second Shop")

        set_feature_override(first.tenant, "tables", True)

        assert get_effective_features(first.tenant)["tables"] is True
        assert get_effective_features(second.tenant)["tables"] is False

    def test_clear_override_restores_default(self, retail):
        set_feature_override(retail.tenant, "installments", False)
        assert get_effective_features(retail.tenant)["installments"] is False

        assert clear_feature_override(retail.tenant, "installments") is True
        assert get_effective_features(retail.tenant)["installments"] is True
        assert clear_feature_override(retail.tenant, "installments") is False

    def test_history_is_recorded(self, retail):
        set_feature_override(retail.tenant, "tables", True, notes="trial")
        set_feature_override(retail.tenant, "tables", False)
        clear_feature_override(retail.tenant, "tables")

        actions = list(
            FeatureFlagHistory.objects.filter(tenant=retail.tenant)
            .order_by("timestamp", "id")
            .values_list("action", flat=True)
        )
        assert actions == ["enabled", "disabled", "cleared"]

    def test_global_flag_applies_without_tenant_override(self, make_business):
        retail = make_business("retail")
        cafe = make_business("cafe")
        Flag.objects.create(name="pos_preorders", everyone=True)

        assert get_effective_features(cafe.tenant)["preorders"] is True

        set_feature_override(retail.tenant, "preorders", False)
        assert get_effective_features(retail.tenant)["preorders"] is False

    def test_unknown_feature_is_rejected(self, retail):
        with pytest.raises(ValueError):
            set_feature_override(retail.tenant, "teleport", True)

    def test_platform_admin_sets_override_through_api(self, api_client, retail, platform_admin):
        api_client.force_authenticate(platform_admin)
        url = reverse("core:tenant_feature_overrides", args=[retail.tenant.id])

        response = api_client.post(url, {"feature": "tables", "enabled": True}, format="json")

        assert response.status_code == 200
        assert response.json()["features"]["tables"] is True
        assert TenantFeatureFlag.objects.filter(tenant=retail.tenant, enabled=True).count() == 1

        response = api_client.post(url, {"feature": "tables", "enabled": None}, format="json")
        assert response.json()["features"]["tables"] is False
        assert response.json()["overrides"] == []

    def test_tenant_owner_cannot_set_overrides(self, api_client, retail):
        api_client.force_authenticate(retail.owner)
        url = reverse("core:tenant_feature_overrides", args=[retail.tenant.id])

        response = api_client.post(url, {"feature": "tables", "enabled": True}, format="json")
        assert response.status_code == 403

    def test_config_endpoint_reports_overrides(self, api_client, supermarket):
        set_feature_override(supermarket.tenant, "installments", True)

        api_client.force_authenticate(supermarket.employee)
        response = api_client.get(reverse("core:tenant_config"))
        assert response.json()["config"]["features"]["installments"] is True


@api_view(["GET"])
@permission_classes(
    [permissions.IsAuthenticated, HasTenantAccess, require_any_feature("tables", "installments")]
)
def tables_or_installments_view(request):
    return Response({"ok": True})


@pytest.mark.django_db
class TestRequireAnyFeature:
    """A view gated on several features opens when any one of them is enabled."""

    def _get(self, user):
        request = APIRequestFactory().get("/gated/")
        force_authenticate(request, user=user)
        return tables_or_installments_view(request)

    def test_rejected_when_no_feature_enabled(self, supermarket):
        response = self._get(supermarket.employee)

        assert response.status_code == 403
        assert response.data == {
            "detail": "هذه الميزة غير متاحة لنوع نشاطك",
            "code": "feature_not_available",
            "business_type": "supermarket",
            "required_features": ["tables", "installments"],
        }

    @pytest.mark.parametrize("business_type", ["restaurant", "cafe", "retail"])
    def test_allowed_when_any_feature_enabled(self, make_business, business_type):
        business = make_business(business_type)
        assert self._get(business.employee).status_code == 200

    def test_override_opens_the_view(self, supermarket):
        set_feature_override(supermarket.tenant, "installments", True)
        assert self._get(supermarket.employee).status_code == 200
