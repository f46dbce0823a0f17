import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models

PAYMENT_METHOD_CHOICES = [
    ("CASH", "Cash"),
    ("CARD", "Card"),
    ("INSTALLMENT", "Installment"),
    ("OTHER", "Other"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
        ("inventory", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Discount",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(help_text="Display name of the discount", max_length=100)),
                (
                    "code",
                    models.CharField(
                        blank=True,
                        help_text="Coupon code entered at checkout (optional)",
                        max_length=50,
                        null=True,
                    ),
                ),
                (
                    "discount_type",
                    models.CharField(
                        choices=[("PERCENTAGE", "Percentage"), ("AMOUNT", "Fixed Amount")],
                        default="PERCENTAGE",
                        max_length=20,
                    ),
                ),
                (
                    "value",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Percentage (0-100) or fixed amount",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "min_purchase",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Minimum subtotal required to use the discount",
                        max_digits=12,
                        null=True,
                    ),
                ),
                (
                    "max_uses",
                    models.PositiveIntegerField(
                        blank=True, help_text="Maximum number of redemptions (empty = unlimited)", null=True
                    ),
                ),
                ("used_count", models.PositiveIntegerField(default=0, help_text="Number of redemptions so far")),
                ("start_date", models.DateTimeField(blank=True, null=True)),
                ("end_date", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tenant",
                    models.ForeignKey(
                        help_text="Tenant that owns this discount",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="discounts",
                        to="core.tenant",
                    ),
                ),
            ],
            options={
                "db_table": "sales_discounts",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["tenant", "is_active"], name="discount_tenant_active_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("code__isnull", False)),
                        fields=("tenant", "code"),
                        name="discount_unique_code_per_tenant",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Shift",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "opening_balance",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Cash in the drawer when the shift opened",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("expected_cash", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("actual_cash", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                (
                    "difference",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Actual minus expected cash at close",
                        max_digits=12,
                        null=True,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                ("opened_at", models.DateTimeField(auto_now_add=True)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "branch",
                    models.ForeignKey(
                        help_text="Branch whose register this shift covers",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="shifts",
                        to="core.branch",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="shifts", to="core.tenant"
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Cashier who opened the shift",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="shifts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "sales_shifts",
                "ordering": ["-opened_at"],
                "indexes": [
                    models.Index(fields=["tenant", "-opened_at"], name="shift_tenant_opened_idx"),
                    models.Index(fields=["user", "closed_at"], name="shift_user_closed_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("closed_at__isnull", True)),
                        fields=("branch",),
                        name="one_open_shift_per_branch",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CashTransaction",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[("DEPOSIT", "Deposit"), ("WITHDRAWAL", "Withdrawal")], max_length=20
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                ("reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="cash_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "shift",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="transactions",
                        to="sales.shift",
                    ),
                ),
            ],
            options={
                "db_table": "sales_cash_transactions",
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the sale",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "invoice_number",
                    models.CharField(
                        help_text="Invoice number unique within tenant (e.g., 'INV-20240115-0001')",
                        max_length=50,
                    ),
                ),
                ("subtotal", models.DecimalField(decimal_places=2, help_text="Sum of line totals", max_digits=12)),
                (
                    "discount",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Sale-level discount amount",
                        max_digits=12,
                    ),
                ),
                (
                    "discount_type",
                    models.CharField(
                        choices=[("amount", "Amount"), ("percentage", "Percentage"), ("coupon", "Coupon")],
                        default="amount",
                        max_length=20,
                    ),
                ),
                (
                    "tax",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Tax amount",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "total",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Total amount (subtotal - discount + tax)",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("paid", models.DecimalField(decimal_places=2, help_text="Amount tendered", max_digits=12)),
                (
                    "change",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), help_text="Change returned", max_digits=12
                    ),
                ),
                (
                    "payment_method",
                    models.CharField(
                        choices=PAYMENT_METHOD_CHOICES,
                        default="CASH",
                        help_text="Payment method used",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("COMPLETED", "Completed"),
                            ("PARTIALLY_REFUNDED", "Partially Refunded"),
                            ("REFUNDED", "Refunded"),
                        ],
                        default="COMPLETED",
                        max_length=50,
                    ),
                ),
                (
                    "refunded_total",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Total amount refunded so far",
                        max_digits=12,
                    ),
                ),
                ("customer_name", models.CharField(blank=True, max_length=255)),
                ("customer_phone", models.CharField(blank=True, max_length=20)),
                ("notes", models.TextField(blank=True, help_text="Additional notes about the sale")),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, db_index=True, help_text="When the sale was created"),
                ),
                (
                    "branch",
                    models.ForeignKey(
                        help_text="Branch where the sale was made",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to="core.branch",
                    ),
                ),
                (
                    "cashier",
                    models.ForeignKey(
                        help_text="User who processed the sale",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales_processed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "coupon",
                    models.ForeignKey(
                        blank=True,
                        help_text="Coupon redeemed on this sale",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sales",
                        to="sales.discount",
                    ),
                ),
                (
                    "shift",
                    models.ForeignKey(
                        blank=True,
                        help_text="Cashier's open shift when the sale was made",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sales",
                        to="sales.shift",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        help_text="Tenant that owns this sale",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sales",
                        to="core.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Sale",
                "verbose_name_plural": "Sales",
                "db_table": "sales",
                "ordering": ["-created_at"],
                "unique_together": {("tenant", "invoice_number")},
                "indexes": [
                    models.Index(fields=["tenant", "-created_at"], name="sale_tenant_date_idx"),
                    models.Index(fields=["tenant", "status"], name="sale_tenant_status_idx"),
                    models.Index(fields=["tenant", "branch", "-created_at"], name="sale_branch_date_idx"),
                    models.Index(fields=["shift", "payment_method"], name="sale_shift_payment_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleItem",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the sale item",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("product_name", models.CharField(help_text="Product name at time of sale", max_length=255)),
                (
                    "quantity",
                    models.IntegerField(
                        help_text="Quantity sold", validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                (
                    "unit_price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Unit price at time of sale (may differ from current price)",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "discount",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Discount applied to this specific line",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "total",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Line total (quantity * unit_price - discount)",
                        max_digits=12,
                    ),
                ),
                ("returned_quantity", models.IntegerField(default=0, help_text="Quantity refunded so far")),
                (
                    "sale",
                    models.ForeignKey(
                        help_text="Sale that this item belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="sales.sale",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        help_text="Variant that was sold",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sale_items",
                        to="inventory.productvariant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Sale Item",
                "verbose_name_plural": "Sale Items",
                "db_table": "sale_items",
                "ordering": ["product_name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("returned_quantity__lte", models.F("quantity"))),
                        name="sale_item_returned_not_above_sold",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Refund",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("refund_number", models.CharField(help_text="e.g. RET-20240115-0001", max_length=50)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "processed_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refunds",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="refunds", to="sales.sale"
                    ),
                ),
                (
                    "shift",
                    models.ForeignKey(
                        blank=True,
                        help_text="Open shift the cash was paid out from",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="refunds",
                        to="sales.shift",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="refunds", to="core.tenant"
                    ),
                ),
            ],
            options={
                "db_table": "sales_refunds",
                "ordering": ["-created_at"],
                "unique_together": {("tenant", "refund_number")},
            },
        ),
        migrations.CreateModel(
            name="RefundItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("quantity", models.IntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "refund",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="items", to="sales.refund"
                    ),
                ),
                (
                    "sale_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund_items",
                        to="sales.saleitem",
                    ),
                ),
            ],
            options={
                "db_table": "sales_refund_items",
            },
        ),
        migrations.CreateModel(
            name="Installment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("customer_name", models.CharField(max_length=255)),
                ("customer_phone", models.CharField(blank=True, max_length=20)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("down_payment", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("remaining_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "number_of_payments",
                    models.PositiveIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(120),
                        ]
                    ),
                ),
                ("payment_per_installment", models.DecimalField(decimal_places=2, max_digits=12)),
                ("next_due_date", models.DateField()),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[("ACTIVE", "Active"), ("COMPLETED", "Completed")],
                        default="ACTIVE",
                        max_length=50,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "branch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="installments",
                        to="core.branch",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="installments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sale",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="installment",
                        to="sales.sale",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="installments",
                        to="core.tenant",
                    ),
                ),
            ],
            options={
                "db_table": "sales_installments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["tenant", "status", "next_due_date"], name="installment_due_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InstallmentPayment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "payment_method",
                    models.CharField(choices=PAYMENT_METHOD_CHOICES, default="CASH", max_length=20),
                ),
                ("notes", models.TextField(blank=True)),
                ("paid_at", models.DateTimeField(auto_now_add=True)),
                (
                    "installment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payments",
                        to="sales.installment",
                    ),
                ),
                (
                    "received_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="installment_payments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "sales_installment_payments",
                "ordering": ["-paid_at"],
            },
        ),
    ]
