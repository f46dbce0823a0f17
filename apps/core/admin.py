"""
Django admin configuration for core models.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from apps.core.audit_models import AuditLog
from apps.core.feature_flags import FeatureFlagHistory, TenantFeatureFlag

from .models import Branch, Tenant, User


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    """Admin interface for Tenant model."""

    list_display = ["company_name", "slug", "business_type", "status", "created_at"]
    list_filter = ["business_type", "status", "created_at"]
    search_fields = ["company_name", "slug", "id"]
    readonly_fields = ["id", "created_at", "updated_at"]

    fieldsets = (
        ("Basic Information", {"fields": ("id", "company_name", "slug", "currency")}),
        ("Business", {"fields": ("business_type", "status")}),
        ("Timestamps", {"fields": ("created_at", "updated_at"), "classes": ("collapse",)}),
    )

    ordering = ["-created_at"]


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    """Admin interface for Branch model."""

    list_display = ["name", "tenant", "is_warehouse", "is_active", "created_at"]
    list_filter = ["is_warehouse", "is_active", "tenant"]
    search_fields = ["name", "address", "phone", "tenant__company_name"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["tenant", "name"]


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin interface for User model."""

    list_display = ["username", "email", "role", "tenant", "branch", "is_active"]
    list_filter = ["role", "is_active", "is_staff", "tenant"]
    search_fields = ["username", "email", "first_name", "last_name", "phone", "tenant__company_name"]
    readonly_fields = ["date_joined", "last_login"]

    fieldsets = (
        (None, {"fields": ("username", "password")}),
        ("Personal Information", {"fields": ("first_name", "last_name", "email", "phone")}),
        ("Tenant & Role", {"fields": ("tenant", "role", "branch")}),
        (
            "Permissions",
            {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")},
        ),
        ("Important dates", {"fields": ("last_login", "date_joined")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("username", "password1", "password2", "tenant", "role", "branch"),
            },
        ),
    )


@admin.register(TenantFeatureFlag)
class TenantFeatureFlagAdmin(admin.ModelAdmin):
    list_display = ["tenant", "flag", "enabled", "created_by", "updated_at"]
    list_filter = ["enabled", "flag"]
    search_fields = ["tenant__company_name", "flag__name"]


@admin.register(FeatureFlagHistory)
class FeatureFlagHistoryAdmin(admin.ModelAdmin):
    list_display = ["flag_name", "tenant", "action", "changed_by", "timestamp"]
    list_filter = ["action"]
    readonly_fields = [field.name for field in FeatureFlagHistory._meta.fields]


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Read-only admin for the audit trail."""

    list_display = ["timestamp", "tenant", "user", "category", "action", "description"]
    list_filter = ["category", "action", "severity"]
    search_fields = ["description", "object_id", "tenant__company_name"]
    readonly_fields = [field.name for field in AuditLog._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
