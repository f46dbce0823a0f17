"""
Views for tenant configuration, feature overrides and branches.
"""

import logging

from django.db import transaction
from django.shortcuts import get_object_or_404

from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView

from .audit import log_data_change, log_feature_override, log_tenant_action
from .business_config import get_business_types, get_pos_flow
from .exceptions import Conflict
from .feature_flags import (
    TenantFeatureFlag,
    clear_feature_override,
    get_effective_config,
    set_feature_override,
)
from .mixins import TenantScopedMixin
from .models import Branch, Tenant
from .permissions import HasTenantAccess, IsPlatformAdmin, IsTenantOwner
from .serializers import (
    BranchSerializer,
    CustomTokenObtainPairSerializer,
    FeatureOverrideSerializer,
    TenantSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)


class CustomTokenObtainPairView(TokenObtainPairView):
    """
    JWT token view that includes tenant and business type information.
    """

    serializer_class = CustomTokenObtainPairSerializer


class UserProfileView(generics.RetrieveUpdateAPIView):
    """
    API endpoint for the authenticated user's profile.

    Role, tenant and branch are read-only here.
    """

    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        return self.request.user


# Business configuration


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess])
def tenant_config(request):
    """
    Effective configuration for the requesting tenant.

    Features reflect per-tenant overrides on top of the business-type defaults.
    """
    tenant = request.user.tenant
    return Response(
        {
            "business_type": tenant.business_type,
            "pos_flow": get_pos_flow(tenant.business_type),
            "config": get_effective_config(tenant),
        }
    )


@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def business_types(request):
    """List the business types a tenant can choose from."""
    return Response({"results": get_business_types()})


class TenantSettingsView(generics.RetrieveUpdateAPIView):
    """
    View and update the requesting tenant. Only the owner may change it.
    """

    serializer_class = TenantSerializer
    permission_classes = [permissions.IsAuthenticated, HasTenantAccess]
    http_method_names = ["get", "patch"]

    def get_permissions(self):
        if self.request.method == "PATCH":
            return [permissions.IsAuthenticated(), HasTenantAccess(), IsTenantOwner()]
        return super().get_permissions()

    def get_object(self):
        return self.request.user.tenant

    def perform_update(self, serializer):
        tenant = serializer.instance
        old_values = {"company_name": tenant.company_name, "business_type": tenant.business_type}
        tenant = serializer.save()
        new_values = {"company_name": tenant.company_name, "business_type": tenant.business_type}
        log_tenant_action(
            tenant,
            user=self.request.user,
            old_values=old_values,
            new_values=new_values,
            request=self.request,
        )
        if old_values["business_type"] != new_values["business_type"]:
            logger.info(
                "Tenant %s business type changed %s -> %s",
                tenant.id,
                old_values["business_type"],
                new_values["business_type"],
            )


# Per-tenant feature overrides (platform operators)


@api_view(["GET", "POST"])
@permission_classes([permissions.IsAuthenticated, IsPlatformAdmin])
def tenant_feature_overrides(request, tenant_id):
    """
    List or change feature overrides for one tenant.

    POST body: {"feature": "kitchen", "enabled": true, "notes": "..."}
    ``enabled: null`` removes the override.
    """
    tenant = get_object_or_404(Tenant, id=tenant_id)

    if request.method == "POST":
        serializer = FeatureOverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        feature = serializer.validated_data["feature"]
        enabled = serializer.validated_data["enabled"]
        notes = serializer.validated_data["notes"]

        with transaction.atomic():
            if enabled is None:
                clear_feature_override(tenant, feature, user=request.user, notes=notes)
            else:
                set_feature_override(tenant, feature, enabled, user=request.user, notes=notes)
            log_feature_override(tenant, feature, enabled, user=request.user, request=request)

    overrides = TenantFeatureFlag.objects.filter(tenant=tenant).select_related("flag")
    return Response(
        {
            "tenant_id": str(tenant.id),
            "business_type": tenant.business_type,
            "overrides": [
                {
                    "flag": override.flag.name,
                    "enabled": override.enabled,
                    "notes": override.notes,
                }
                for override in overrides
            ],
            "features": get_effective_config(tenant)["features"],
        },
        status=status.HTTP_200_OK,
    )


# Branch management


class BranchListCreateView(TenantScopedMixin, generics.ListCreateAPIView):
    """
    API endpoint for listing and creating branches.
    """

    queryset = Branch.objects.all()
    serializer_class = BranchSerializer
    permission_classes = [permissions.IsAuthenticated, HasTenantAccess]
    pagination_class = None

    def get_permissions(self):
        if self.request.method == "POST":
            return [permissions.IsAuthenticated(), HasTenantAccess(), IsTenantOwner()]
        return super().get_permissions()

    def perform_create(self, serializer):
        branch = serializer.save(tenant=self.request.user.tenant)
        log_data_change(branch, "CREATE", user=self.request.user)


class BranchDetailView(TenantScopedMixin, generics.RetrieveUpdateDestroyAPIView):
    """
    API endpoint for retrieving, updating and deactivating a branch.

    Deleting a branch deactivates it; branches referenced by sales and
    inventory are never removed.
    """

    queryset = Branch.objects.all()
    serializer_class = BranchSerializer
    permission_classes = [permissions.IsAuthenticated, HasTenantAccess]
    lookup_field = "id"

    def get_permissions(self):
        if self.request.method in ("PUT", "PATCH", "DELETE"):
            return [permissions.IsAuthenticated(), HasTenantAccess(), IsTenantOwner()]
        return super().get_permissions()

    def perform_update(self, serializer):
        branch = serializer.save()
        log_data_change(branch, "UPDATE", user=self.request.user, new_values=serializer.data)

    def perform_destroy(self, instance):
        if not instance.is_active:
            raise Conflict(detail="الفرع غير نشط بالفعل")
        instance.is_active = False
        instance.save(update_fields=["is_active", "updated_at"])
        log_data_change(instance, "DELETE", user=self.request.user)
