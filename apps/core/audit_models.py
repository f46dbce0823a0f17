"""
Audit logging models for the POS platform.

Every stock movement, status transition and administrative change is
recorded here so a tenant can reconstruct who moved what and why.
"""

import uuid

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models


class AuditLog(models.Model):
    """
    Audit log for tenant actions.

    Tracks administrative actions, data modifications, stock movements
    and state transitions.
    """

    # Action categories
    CATEGORY_ADMIN = "ADMIN"
    CATEGORY_DATA = "DATA"
    CATEGORY_INVENTORY = "INVENTORY"
    CATEGORY_WORKFLOW = "WORKFLOW"

    CATEGORY_CHOICES = [
        (CATEGORY_ADMIN, "Administrative Action"),
        (CATEGORY_DATA, "Data Modification"),
        (CATEGORY_INVENTORY, "Stock Movement"),
        (CATEGORY_WORKFLOW, "Status Transition"),
    ]

    # Administrative actions
    ACTION_TENANT_UPDATE = "TENANT_UPDATE"
    ACTION_FEATURE_OVERRIDE = "FEATURE_OVERRIDE"

    # Data modifications
    ACTION_CREATE = "CREATE"
    ACTION_UPDATE = "UPDATE"
    ACTION_DELETE = "DELETE"

    # Inventory
    ACTION_STOCK_IN = "STOCK_IN"
    ACTION_STOCK_OUT = "STOCK_OUT"
    ACTION_STOCK_SET = "STOCK_SET"

    # Workflow
    ACTION_STATUS_CHANGE = "STATUS_CHANGE"
    ACTION_REFUND = "REFUND"

    ACTION_CHOICES = [
        (ACTION_TENANT_UPDATE, "Tenant Updated"),
        (ACTION_FEATURE_OVERRIDE, "Feature Override Changed"),
        (ACTION_CREATE, "Record Created"),
        (ACTION_UPDATE, "Record Updated"),
        (ACTION_DELETE, "Record Deleted"),
        (ACTION_STOCK_IN, "Stock Added"),
        (ACTION_STOCK_OUT, "Stock Deducted"),
        (ACTION_STOCK_SET, "Stock Set"),
        (ACTION_STATUS_CHANGE, "Status Changed"),
        (ACTION_REFUND, "Refund Recorded"),
    ]

    # Severity levels
    SEVERITY_INFO = "INFO"
    SEVERITY_WARNING = "WARNING"

    SEVERITY_CHOICES = [
        (SEVERITY_INFO, "Info"),
        (SEVERITY_WARNING, "Warning"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the audit log entry",
    )

    tenant = models.ForeignKey(
        "core.Tenant",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
        help_text="Tenant associated with this action (null for platform actions)",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs_performed",
        help_text="User who performed the action",
    )

    category = models.CharField(
        max_length=20,
        choices=CATEGORY_CHOICES,
        db_index=True,
        help_text="Category of the action",
    )

    action = models.CharField(
        max_length=50,
        choices=ACTION_CHOICES,
        db_index=True,
        help_text="Specific action performed",
    )

    severity = models.CharField(
        max_length=20,
        choices=SEVERITY_CHOICES,
        default=SEVERITY_INFO,
        help_text="Severity level of the action",
    )

    description = models.TextField(
        help_text="Human-readable description of the action",
    )

    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        help_text="Type of the affected object",
    )

    object_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="ID of the affected object",
    )

    affected_object = GenericForeignKey("content_type", "object_id")

    old_values = models.JSONField(
        null=True,
        blank=True,
        help_text="Previous values before the change (JSON format)",
    )

    new_values = models.JSONField(
        null=True,
        blank=True,
        help_text="New values after the change (JSON format)",
    )

    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="IP address of the user",
    )

    request_path = models.CharField(
        max_length=500,
        blank=True,
        help_text="Request path/URL",
    )

    timestamp = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="When the action occurred",
    )

    class Meta:
        db_table = "audit_logs"
        ordering = ["-timestamp"]
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"
        indexes = [
            models.Index(fields=["tenant", "-timestamp"], name="auditlog_tenant_time_idx"),
            models.Index(fields=["category", "-timestamp"], name="auditlog_category_time_idx"),
            models.Index(fields=["content_type", "object_id"], name="auditlog_object_idx"),
        ]

    def __str__(self):
        return f"{self.action} at {self.timestamp}"
