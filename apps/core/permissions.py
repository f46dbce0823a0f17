"""
Permission classes for tenant-based access control and feature gating.
"""

import logging

from rest_framework import permissions

from apps.core.exceptions import FeatureNotAvailable
from apps.core.feature_flags import get_effective_features

logger = logging.getLogger(__name__)


class HasTenantAccess(permissions.BasePermission):
    """
    Permission class to ensure users can only access resources from their own tenant.
    """

    message = "يجب أن يكون المستخدم تابعاً لنشاط تجاري"

    def has_permission(self, request, view):
        # Check if user is authenticated and has a tenant
        return request.user.is_authenticated and request.user.tenant_id is not None

    def has_object_permission(self, request, view, obj):
        # Check if the object belongs to the user's tenant
        if hasattr(obj, "tenant_id"):
            return obj.tenant_id == request.user.tenant_id
        return True


class CanManageInventory(permissions.BasePermission):
    """
    Owners and managers may change stock levels, purchases and transfers.
    """

    message = "ليس لديك صلاحية إدارة المخزون"

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.can_manage_inventory()


class IsTenantOwner(permissions.BasePermission):
    message = "هذا الإجراء متاح لمالك النشاط فقط"

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.is_tenant_owner()


class IsTenantManager(permissions.BasePermission):
    message = "هذا الإجراء متاح للمالك أو المدير فقط"

    def has_permission(self, request, view):
        user = request.user
        return user.is_authenticated and (user.is_tenant_owner() or user.is_tenant_manager())


class IsPlatformAdmin(permissions.BasePermission):
    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.is_platform_admin()


def _effective_features(request):
    # Cache per request; several gates may run for one view
    features = getattr(request, "_tenant_features", None)
    if features is None:
        features = get_effective_features(request.user.tenant)
        request._tenant_features = features
    return features


def require_feature(feature):
    """
    Build a permission class that requires a business feature.

    Usage:
        @permission_classes([IsAuthenticated, HasTenantAccess, require_feature("tables")])
    """

    class RequireFeature(permissions.BasePermission):
        def has_permission(self, request, view):
            tenant = request.user.tenant
            if _effective_features(request).get(feature, False):
                return True
            logger.warning(
                "Feature %s blocked for tenant %s (%s)", feature, tenant.id, tenant.business_type
            )
            raise FeatureNotAvailable(tenant.business_type, feature=feature)

    RequireFeature.__name__ = f"RequireFeature_{feature}"
    return RequireFeature


def require_any_feature(*features):
    """
    Build a permission class that passes when ANY of the features is enabled.
    """

    class RequireAnyFeature(permissions.BasePermission):
        def has_permission(self, request, view):
            tenant = request.user.tenant
            enabled = _effective_features(request)
            if any(enabled.get(feature, False) for feature in features):
                return True
            logger.warning(
                "Features %s blocked for tenant %s (%s)",
                ", ".join(features),
                tenant.id,
                tenant.business_type,
            )
            raise FeatureNotAvailable(tenant.business_type, required_features=features)

    RequireAnyFeature.__name__ = f"RequireAnyFeature_{'_'.join(features)}"
    return RequireAnyFeature
