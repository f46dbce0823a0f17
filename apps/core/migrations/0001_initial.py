import uuid

import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
        ("contenttypes", "0002_remove_content_type_name"),
        ("waffle", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Tenant",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the tenant",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("company_name", models.CharField(help_text="Name of the business", max_length=255)),
                (
                    "slug",
                    models.SlugField(
                        help_text="URL-friendly identifier for the tenant", max_length=255, unique=True
                    ),
                ),
                (
                    "business_type",
                    models.CharField(
                        choices=[
                            ("restaurant", "Restaurant"),
                            ("cafe", "Cafe"),
                            ("retail", "Retail"),
                            ("supermarket", "Supermarket"),
                        ],
                        default="retail",
                        help_text="Business type that decides available features and POS flow",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("ACTIVE", "Active"), ("SUSPENDED", "Suspended")],
                        default="ACTIVE",
                        help_text="Current operational status of the tenant",
                        max_length=20,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="EGP", help_text="ISO currency code used on invoices", max_length=3
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, help_text="Timestamp when the tenant was created"
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True, help_text="Timestamp when the tenant was last updated"
                    ),
                ),
            ],
            options={
                "verbose_name": "Tenant",
                "verbose_name_plural": "Tenants",
                "db_table": "tenants",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="tenant_status_idx"),
                    models.Index(fields=["business_type"], name="tenant_business_type_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Branch",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the branch",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(help_text="Branch name", max_length=255)),
                ("address", models.TextField(blank=True, help_text="Branch address")),
                ("phone", models.CharField(blank=True, help_text="Branch phone number", max_length=20)),
                (
                    "is_warehouse",
                    models.BooleanField(
                        default=False,
                        help_text="Whether this branch is a storage warehouse rather than a shop",
                    ),
                ),
                ("is_active", models.BooleanField(default=True, help_text="Whether the branch is active")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tenant",
                    models.ForeignKey(
                        help_text="Tenant that owns this branch",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="branches",
                        to="core.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Branch",
                "verbose_name_plural": "Branches",
                "db_table": "branches",
                "ordering": ["name"],
                "unique_together": {("tenant", "name")},
                "indexes": [
                    models.Index(fields=["tenant", "is_active"], name="branch_tenant_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                (
                    "is_superuser",
                    models.BooleanField(
                        default=False,
                        help_text="Designates that this user has all permissions without explicitly assigning them.",
                        verbose_name="superuser status",
                    ),
                ),
                (
                    "username",
                    models.CharField(
                        error_messages={"unique": "A user with that username already exists."},
                        help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.",
                        max_length=150,
                        unique=True,
                        validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                        verbose_name="username",
                    ),
                ),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="email address")),
                (
                    "is_staff",
                    models.BooleanField(
                        default=False,
                        help_text="Designates whether the user can log into this admin site.",
                        verbose_name="staff status",
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text=(
                            "Designates whether this user should be treated as active. "
                            "Unselect this instead of deleting accounts."
                        ),
                        verbose_name="active",
                    ),
                ),
                (
                    "date_joined",
                    models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined"),
                ),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("PLATFORM_ADMIN", "Platform Administrator"),
                            ("TENANT_OWNER", "Business Owner"),
                            ("TENANT_MANAGER", "Branch Manager"),
                            ("TENANT_EMPLOYEE", "Cashier"),
                        ],
                        default="TENANT_EMPLOYEE",
                        help_text="User's role in the system",
                        max_length=50,
                    ),
                ),
                ("phone", models.CharField(blank=True, help_text="User's phone number", max_length=20)),
                (
                    "branch",
                    models.ForeignKey(
                        blank=True,
                        help_text="Branch that this user is assigned to",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="users",
                        to="core.branch",
                    ),
                ),
                (
                    "groups",
                    models.ManyToManyField(
                        blank=True,
                        help_text=(
                            "The groups this user belongs to. A user will get all permissions "
                            "granted to each of their groups."
                        ),
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.group",
                        verbose_name="groups",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        blank=True,
                        help_text="Tenant that this user belongs to (null for platform admins)",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="users",
                        to="core.tenant",
                    ),
                ),
                (
                    "user_permissions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Specific permissions for this user.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.permission",
                        verbose_name="user permissions",
                    ),
                ),
            ],
            options={
                "verbose_name": "User",
                "verbose_name_plural": "Users",
                "db_table": "users",
                "ordering": ["username"],
                "indexes": [
                    models.Index(fields=["tenant", "role"], name="user_tenant_role_idx"),
                    models.Index(fields=["tenant", "branch"], name="user_tenant_branch_idx"),
                ],
            },
            managers=[
                ("objects", django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the audit log entry",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("ADMIN", "Administrative Action"),
                            ("DATA", "Data Modification"),
                            ("INVENTORY", "Stock Movement"),
                            ("WORKFLOW", "Status Transition"),
                        ],
                        db_index=True,
                        help_text="Category of the action",
                        max_length=20,
                    ),
                ),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("TENANT_UPDATE", "Tenant Updated"),
                            ("FEATURE_OVERRIDE", "Feature Override Changed"),
                            ("CREATE", "Record Created"),
                            ("UPDATE", "Record Updated"),
                            ("DELETE", "Record Deleted"),
                            ("STOCK_IN", "Stock Added"),
                            ("STOCK_OUT", "Stock Deducted"),
                            ("STOCK_SET", "Stock Set"),
                            ("STATUS_CHANGE", "Status Changed"),
                            ("REFUND", "Refund Recorded"),
                        ],
                        db_index=True,
                        help_text="Specific action performed",
                        max_length=50,
                    ),
                ),
                (
                    "severity",
                    models.CharField(
                        choices=[("INFO", "Info"), ("WARNING", "Warning")],
                        default="INFO",
                        help_text="Severity level of the action",
                        max_length=20,
                    ),
                ),
                ("description", models.TextField(help_text="Human-readable description of the action")),
                (
                    "object_id",
                    models.CharField(
                        blank=True, help_text="ID of the affected object", max_length=255, null=True
                    ),
                ),
                (
                    "old_values",
                    models.JSONField(
                        blank=True, help_text="Previous values before the change (JSON format)", null=True
                    ),
                ),
                (
                    "new_values",
                    models.JSONField(
                        blank=True, help_text="New values after the change (JSON format)", null=True
                    ),
                ),
                (
                    "ip_address",
                    models.GenericIPAddressField(blank=True, help_text="IP address of the user", null=True),
                ),
                ("request_path", models.CharField(blank=True, help_text="Request path/URL", max_length=500)),
                (
                    "timestamp",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, help_text="When the action occurred"
                    ),
                ),
                (
                    "content_type",
                    models.ForeignKey(
                        blank=True,
                        help_text="Type of the affected object",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to="contenttypes.contenttype",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        blank=True,
                        help_text="Tenant associated with this action (null for platform actions)",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audit_logs",
                        to="core.tenant",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who performed the action",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audit_logs_performed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Audit Log",
                "verbose_name_plural": "Audit Logs",
                "db_table": "audit_logs",
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["tenant", "-timestamp"], name="auditlog_tenant_time_idx"),
                    models.Index(fields=["category", "-timestamp"], name="auditlog_category_time_idx"),
                    models.Index(fields=["content_type", "object_id"], name="auditlog_object_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TenantFeatureFlag",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("enabled", models.BooleanField(default=False, help_text="Override flag state for this tenant")),
                (
                    "notes",
                    models.TextField(
                        blank=True,
                        help_text="Reason for override (e.g., pilot of kitchen display for a retail shop)",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_tenant_flags",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "flag",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tenant_overrides",
                        to="waffle.flag",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="feature_flags",
                        to="core.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Tenant Feature Flag",
                "verbose_name_plural": "Tenant Feature Flags",
                "db_table": "core_tenant_feature_flag",
                "unique_together": {("tenant", "flag")},
                "indexes": [models.Index(fields=["tenant", "flag"], name="tenant_flag_idx")],
            },
        ),
        migrations.CreateModel(
            name="FeatureFlagHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("flag_name", models.CharField(max_length=100)),
                (
                    "action",
                    models.CharField(
                        choices=[("enabled", "Enabled"), ("disabled", "Disabled"), ("cleared", "Cleared")],
                        max_length=20,
                    ),
                ),
                ("old_value", models.JSONField(blank=True, help_text="Previous state before change", null=True)),
                ("new_value", models.JSONField(blank=True, help_text="New state after change", null=True)),
                ("reason", models.TextField(blank=True, help_text="Reason for the change")),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                (
                    "changed_by",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="flag_changes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        blank=True,
                        help_text="Tenant if this is a tenant-specific change",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to="core.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Feature Flag History",
                "verbose_name_plural": "Feature Flag History",
                "db_table": "core_feature_flag_history",
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["flag_name", "timestamp"], name="flag_history_name_idx"),
                    models.Index(fields=["tenant", "timestamp"], name="flag_history_tenant_idx"),
                ],
            },
        ),
    ]
