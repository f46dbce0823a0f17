"""
Feature overrides on top of the business-type configuration, backed by django-waffle.

Every business feature (tables, kitchen, installments, ...) has a waffle
``Flag`` named ``pos_<feature>``. Effective features for a tenant are
resolved in this order:

1. Tenant-specific override (``TenantFeatureFlag``)
2. Global flag state when the flag is forced on or off for everyone
3. Static business-type configuration
"""

import logging

from django.db import models

from waffle.models import Flag

from apps.core.business_config import FEATURES, get_config

logger = logging.getLogger(__name__)

FLAG_PREFIX = "pos_"


class TenantFeatureFlag(models.Model):
    """
    Per-tenant feature flag overrides.
    Allows enabling/disabling a business feature for a specific tenant.
    """

    tenant = models.ForeignKey(
        "core.Tenant",
        on_delete=models.CASCADE,
        related_name="feature_flags",
    )
    flag = models.ForeignKey(
        Flag,
        on_delete=models.CASCADE,
        related_name="tenant_overrides",
    )
    enabled = models.BooleanField(
        default=False,
        help_text="Override flag state for this tenant",
    )
    notes = models.TextField(
        blank=True,
        help_text="Reason for override (e.g., pilot of kitchen display for a retail shop)",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        "core.User",
        on_delete=models.SET_NULL,
        null=True,
        related_name="created_tenant_flags",
    )

    class Meta:
        db_table = "core_tenant_feature_flag"
        unique_together = [["tenant", "flag"]]
        indexes = [
            models.Index(fields=["tenant", "flag"], name="tenant_flag_idx"),
        ]
        verbose_name = "Tenant Feature Flag"
        verbose_name_plural = "Tenant Feature Flags"

    def __str__(self):
        return f"{self.tenant.company_name} - {self.flag.name}: {self.enabled}"


class FeatureFlagHistory(models.Model):
    """
    Track all changes to feature overrides for audit trail.
    """

    ACTION_ENABLED = "enabled"
    ACTION_DISABLED = "disabled"
    ACTION_CLEARED = "cleared"

    flag_name = models.CharField(max_length=100)
    tenant = models.ForeignKey(
        "core.Tenant",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        help_text="Tenant if this is a tenant-specific change",
    )
    action = models.CharField(
        max_length=20,
        choices=[
            (ACTION_ENABLED, "Enabled"),
            (ACTION_DISABLED, "Disabled"),
            (ACTION_CLEARED, "Cleared"),
        ],
    )
    old_value = models.JSONField(
        null=True,
        blank=True,
        help_text="Previous state before change",
    )
    new_value = models.JSONField(
        null=True,
        blank=True,
        help_text="New state after change",
    )
    changed_by = models.ForeignKey(
        "core.User",
        on_delete=models.SET_NULL,
        null=True,
        related_name="flag_changes",
    )
    reason = models.TextField(
        blank=True,
        help_text="Reason for the change",
    )
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "core_feature_flag_history"
        indexes = [
            models.Index(fields=["flag_name", "timestamp"], name="flag_history_name_idx"),
            models.Index(fields=["tenant", "timestamp"], name="flag_history_tenant_idx"),
        ]
        ordering = ["-timestamp"]
        verbose_name = "Feature Flag History"
        verbose_name_plural = "Feature Flag History"

    def __str__(self):
        tenant_str = f" ({self.tenant.company_name})" if self.tenant else ""
        return f"{self.flag_name}{tenant_str} - {self.action} at {self.timestamp}"


# Service functions for feature resolution


def flag_name_for(feature):
    return f"{FLAG_PREFIX}{feature}"


def get_effective_features(tenant):
    """
    Resolve the features a tenant can use.

    Args:
        tenant: Tenant instance

    Returns:
        dict: feature name -> bool
    """
    features = get_config(tenant.business_type)["features"]

    flag_names = {flag_name_for(feature): feature for feature in FEATURES}

    # Global flags forced on/off for everyone
    for name, everyone in Flag.objects.filter(
        name__in=flag_names.keys(), everyone__isnull=False
    ).values_list("name", "everyone"):
        features[flag_names[name]] = everyone

    # Tenant overrides win over everything else
    for name, enabled in TenantFeatureFlag.objects.filter(
        tenant=tenant, flag__name__in=flag_names.keys()
    ).values_list("flag__name", "enabled"):
        features[flag_names[name]] = enabled

    return features


def is_feature_enabled_for_tenant(tenant, feature):
    """Check a single feature against the tenant's effective feature set."""
    return bool(get_effective_features(tenant).get(feature, False))


def get_effective_config(tenant):
    """Configuration bundle for the tenant with effective features applied."""
    config = get_config(tenant.business_type)
    config["features"] = get_effective_features(tenant)
    return config


def set_feature_override(tenant, feature, enabled, user=None, notes=""):
    """
    Force a feature on or off for a specific tenant.

    Args:
        tenant: Tenant receiving the override
        feature: Feature name (must be one of FEATURES)
        enabled: Override value
        user: User performing the change
        notes: Reason for the override

    Returns:
        TenantFeatureFlag: The override row
    """
    if feature not in FEATURES:
        raise ValueError(f"Unknown feature: {feature}")

    flag_name = flag_name_for(feature)
    flag, _ = Flag.objects.get_or_create(name=flag_name, defaults={"note": f"POS feature {feature}"})

    existing = TenantFeatureFlag.objects.filter(tenant=tenant, flag=flag).first()
    old_value = {"enabled": existing.enabled} if existing else None

    tenant_flag, _ = TenantFeatureFlag.objects.update_or_create(
        tenant=tenant,
        flag=flag,
        defaults={
            "enabled": enabled,
            "notes": notes,
            "created_by": user,
        },
    )

    FeatureFlagHistory.objects.create(
        flag_name=flag_name,
        tenant=tenant,
        action=FeatureFlagHistory.ACTION_ENABLED if enabled else FeatureFlagHistory.ACTION_DISABLED,
        old_value=old_value,
        new_value={"enabled": enabled, "notes": notes},
        changed_by=user,
        reason=notes,
    )

    logger.info(
        "Feature override %s=%s set for tenant %s", feature, enabled, tenant.id
    )
    return tenant_flag


def clear_feature_override(tenant, feature, user=None, notes=""):
    """Remove a tenant override so the business-type default applies again."""
    flag_name = flag_name_for(feature)
    existing = TenantFeatureFlag.objects.filter(tenant=tenant, flag__name=flag_name).first()
    if existing is None:
        return False

    old_value = {"enabled": existing.enabled}
    existing.delete()

    FeatureFlagHistory.objects.create(
        flag_name=flag_name,
        tenant=tenant,
        action=FeatureFlagHistory.ACTION_CLEARED,
        old_value=old_value,
        changed_by=user,
        reason=notes,
    )

    logger.info("Feature override %s cleared for tenant %s", feature, tenant.id)
    return True
