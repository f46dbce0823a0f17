import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models

import apps.inventory.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Category",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the category",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "name",
                    models.CharField(
                        help_text="Category name (e.g., Drinks, Shoes, Dairy)", max_length=100
                    ),
                ),
                (
                    "description",
                    models.TextField(blank=True, help_text="Optional description of the category"),
                ),
                (
                    "sort_order",
                    models.PositiveIntegerField(default=0, help_text="Display order on the POS screen"),
                ),
                ("is_active", models.BooleanField(default=True, help_text="Whether this category is active")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tenant",
                    models.ForeignKey(
                        help_text="Tenant that owns this category",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="categories",
                        to="core.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Category",
                "verbose_name_plural": "Categories",
                "db_table": "inventory_categories",
                "ordering": ["sort_order", "name"],
                "unique_together": {("tenant", "name")},
                "indexes": [models.Index(fields=["tenant", "is_active"], name="cat_tenant_active_idx")],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the product",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(help_text="Product name", max_length=255)),
                ("sku", models.CharField(help_text="Base stock keeping unit", max_length=100)),
                ("description", models.TextField(blank=True, help_text="Product description")),
                (
                    "image",
                    models.CharField(
                        blank=True,
                        help_text="Path of the product image under the uploads root",
                        max_length=500,
                    ),
                ),
                (
                    "track_stock",
                    models.BooleanField(
                        default=True, help_text="Whether sales of this product deduct inventory"
                    ),
                ),
                ("is_active", models.BooleanField(default=True, help_text="Whether the product is for sale")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "category",
                    models.ForeignKey(
                        blank=True,
                        help_text="Product category",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="products",
                        to="inventory.category",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        help_text="Tenant that owns this product",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="products",
                        to="core.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Product",
                "verbose_name_plural": "Products",
                "db_table": "inventory_products",
                "ordering": ["name"],
                "unique_together": {("tenant", "sku")},
                "indexes": [
                    models.Index(fields=["tenant", "is_active"], name="product_tenant_active_idx"),
                    models.Index(fields=["tenant", "category"], name="product_tenant_category_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductVariant",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the variant",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("sku", models.CharField(help_text="Variant stock keeping unit", max_length=100)),
                (
                    "barcode",
                    models.CharField(
                        blank=True,
                        help_text="Barcode printed on the item (EAN/UPC/custom)",
                        max_length=100,
                    ),
                ),
                ("size", models.CharField(blank=True, help_text="Size (e.g., M, 42, 1L)", max_length=50)),
                ("color", models.CharField(blank=True, help_text="Color", max_length=50)),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Selling price per unit",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "cost",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Purchase cost per unit",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("is_active", models.BooleanField(default=True, help_text="Whether the variant is for sale")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        help_text="Product this variant belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="variants",
                        to="inventory.product",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        help_text="Tenant that owns this variant",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="product_variants",
                        to="core.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Product Variant",
                "verbose_name_plural": "Product Variants",
                "db_table": "inventory_product_variants",
                "ordering": ["product__name", "sku"],
                "unique_together": {("tenant", "sku")},
                "indexes": [
                    models.Index(fields=["tenant", "barcode"], name="variant_barcode_idx"),
                    models.Index(fields=["product", "is_active"], name="variant_product_active_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("barcode", ""), _negated=True),
                        fields=("tenant", "barcode"),
                        name="variant_unique_barcode_per_tenant",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Inventory",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the stock row",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("quantity", models.IntegerField(default=0, help_text="Units on hand")),
                (
                    "min_stock",
                    models.IntegerField(
                        default=apps.inventory.models.default_min_stock,
                        help_text="Low stock alert threshold",
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "branch",
                    models.ForeignKey(
                        help_text="Branch holding the stock",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="inventory",
                        to="core.branch",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        help_text="Tenant that owns this stock row",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="inventory_rows",
                        to="core.tenant",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        help_text="Variant being stocked",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="inventory",
                        to="inventory.productvariant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Inventory",
                "verbose_name_plural": "Inventory",
                "db_table": "inventory_stock",
                "ordering": ["-updated_at"],
                "indexes": [models.Index(fields=["tenant", "branch"], name="inventory_tenant_branch_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("variant", "branch"), name="inventory_unique_variant_branch"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gte", 0)), name="inventory_quantity_non_negative"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Supplier",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(help_text="Supplier company name", max_length=255)),
                (
                    "contact_person",
                    models.CharField(blank=True, help_text="Primary contact person name", max_length=255),
                ),
                ("email", models.EmailField(blank=True, help_text="Primary email address", max_length=254)),
                ("phone", models.CharField(blank=True, help_text="Primary phone number", max_length=20)),
                ("address", models.TextField(blank=True, help_text="Complete address")),
                ("is_active", models.BooleanField(default=True, help_text="Whether supplier is active")),
                ("notes", models.TextField(blank=True, help_text="Internal notes about supplier")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tenant",
                    models.ForeignKey(
                        help_text="Tenant that owns this supplier",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="suppliers",
                        to="core.tenant",
                    ),
                ),
            ],
            options={
                "db_table": "inventory_suppliers",
                "ordering": ["name"],
                "unique_together": {("tenant", "name")},
                "indexes": [models.Index(fields=["tenant", "is_active"], name="supplier_tenant_active_idx")],
            },
        ),
        migrations.CreateModel(
            name="PurchaseOrder",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "po_number",
                    models.CharField(help_text="Purchase order number (PO-YYYYMMDD-NNNN)", max_length=50),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("partial", "Partially Received"),
                            ("received", "Received"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        help_text="Current status of the purchase order",
                        max_length=50,
                    ),
                ),
                (
                    "total",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Total cost of all line items",
                        max_digits=12,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("received_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, help_text="Internal notes about this purchase order")),
                (
                    "branch",
                    models.ForeignKey(
                        help_text="Branch receiving the goods",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchase_orders",
                        to="core.branch",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="created_purchase_orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "supplier",
                    models.ForeignKey(
                        help_text="Supplier for this purchase order",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchase_orders",
                        to="inventory.supplier",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        help_text="Tenant that owns this purchase order",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="purchase_orders",
                        to="core.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Purchase Order",
                "verbose_name_plural": "Purchase Orders",
                "db_table": "inventory_purchase_orders",
                "ordering": ["-created_at"],
                "unique_together": {("tenant", "po_number")},
                "indexes": [
                    models.Index(fields=["tenant", "status"], name="po_tenant_status_idx"),
                    models.Index(fields=["tenant", "supplier"], name="po_tenant_supplier_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PurchaseOrderItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "quantity",
                    models.IntegerField(
                        help_text="Ordered quantity",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "received_quantity",
                    models.IntegerField(
                        default=0,
                        help_text="Quantity received so far",
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                (
                    "unit_cost",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Cost per unit",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "purchase_order",
                    models.ForeignKey(
                        help_text="Purchase order this item belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="inventory.purchaseorder",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        help_text="Variant being purchased",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchase_items",
                        to="inventory.productvariant",
                    ),
                ),
            ],
            options={
                "db_table": "inventory_purchase_order_items",
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("received_quantity__lte", models.F("quantity"))),
                        name="po_item_received_not_above_ordered",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="StockTransfer",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the transfer",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "transfer_number",
                    models.CharField(
                        help_text="Unique transfer number (e.g., TRF-20240115-0001)", max_length=50
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("in_transit", "In Transit"),
                            ("received", "Received"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        help_text="Current status of the transfer",
                        max_length=50,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, help_text="When the transfer was requested"),
                ),
                (
                    "shipped_at",
                    models.DateTimeField(blank=True, help_text="When stock left the source", null=True),
                ),
                ("received_at", models.DateTimeField(blank=True, help_text="When stock arrived", null=True)),
                (
                    "cancelled_at",
                    models.DateTimeField(blank=True, help_text="When it was cancelled", null=True),
                ),
                ("notes", models.TextField(blank=True, help_text="Additional notes about the transfer")),
                (
                    "from_branch",
                    models.ForeignKey(
                        help_text="Source branch sending the stock",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_out",
                        to="core.branch",
                    ),
                ),
                (
                    "received_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who received the transfer",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="transfers_received",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "requested_by",
                    models.ForeignKey(
                        help_text="User who requested the transfer",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_requested",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "shipped_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who shipped the transfer",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="transfers_shipped",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        help_text="Tenant that owns this transfer",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_transfers",
                        to="core.tenant",
                    ),
                ),
                (
                    "to_branch",
                    models.ForeignKey(
                        help_text="Destination branch receiving the stock",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_in",
                        to="core.branch",
                    ),
                ),
            ],
            options={
                "verbose_name": "Stock Transfer",
                "verbose_name_plural": "Stock Transfers",
                "db_table": "inventory_stock_transfers",
                "ordering": ["-created_at"],
                "unique_together": {("tenant", "transfer_number")},
                "indexes": [
                    models.Index(fields=["tenant", "status"], name="transfer_tenant_status_idx"),
                    models.Index(fields=["tenant", "-created_at"], name="transfer_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("from_branch", models.F("to_branch")), _negated=True),
                        name="transfer_distinct_branches",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="StockTransferItem",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the transfer item",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "quantity",
                    models.IntegerField(
                        help_text="Quantity shipped",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "received_quantity",
                    models.IntegerField(
                        blank=True, help_text="Actual quantity received (may be below shipped)", null=True
                    ),
                ),
                (
                    "has_discrepancy",
                    models.BooleanField(
                        default=False, help_text="Whether received quantity differs from shipped"
                    ),
                ),
                ("discrepancy_notes", models.TextField(blank=True, help_text="Notes about any discrepancies")),
                (
                    "transfer",
                    models.ForeignKey(
                        help_text="Transfer this item belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="inventory.stocktransfer",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        help_text="Variant being transferred",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfer_items",
                        to="inventory.productvariant",
                    ),
                ),
            ],
            options={
                "db_table": "inventory_stock_transfer_items",
                "ordering": ["id"],
                "unique_together": {("transfer", "variant")},
            },
        ),
    ]
