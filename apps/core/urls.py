from django.urls import path

from . import health, views

app_name = "core"

urlpatterns = [
    path("health/", health.health_check, name="health_check"),
    path("auth/me/", views.UserProfileView.as_view(), name="user_profile"),
    # Business configuration
    path("config/", views.tenant_config, name="tenant_config"),
    path("config/business-types/", views.business_types, name="business_types"),
    path("tenant/", views.TenantSettingsView.as_view(), name="tenant_settings"),
    # Platform operators
    path(
        "platform/tenants/<uuid:tenant_id>/features/",
        views.tenant_feature_overrides,
        name="tenant_feature_overrides",
    ),
    # Branches
    path("branches/", views.BranchListCreateView.as_view(), name="branch_list"),
    path("branches/<uuid:id>/", views.BranchDetailView.as_view(), name="branch_detail"),
]
