"""
Inventory models for the multi-tenant POS platform.

- Categories, products and product variants (SKU, barcode, size, color)
- Stock levels per variant and branch
- Suppliers and purchase orders with partial receipt
- Two-phase stock transfers between branches
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from apps.core.models import Branch, Tenant, User


def default_min_stock():
    return getattr(settings, "INVENTORY_DEFAULT_MIN_STOCK", 5)


class Category(models.Model):
    """
    Product categories shown on the POS screen.

    Each category is tenant-scoped for data isolation.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the category",
    )

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="categories",
        help_text="Tenant that owns this category",
    )

    name = models.CharField(
        max_length=100,
        help_text="Category name (e.g., Drinks, Shoes, Dairy)",
    )

    description = models.TextField(
        blank=True,
        help_text="Optional description of the category",
    )

    sort_order = models.PositiveIntegerField(
        default=0,
        help_text="Display order on the POS screen",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this category is active",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "inventory_categories"
        ordering = ["sort_order", "name"]
        verbose_name = "Category"
        verbose_name_plural = "Categories"
        unique_together = [["tenant", "name"]]
        indexes = [
            models.Index(fields=["tenant", "is_active"], name="cat_tenant_active_idx"),
        ]

    def __str__(self):
        return self.name


class Product(models.Model):
    """
    A sellable product. Prices and stock live on its variants.

    Products without stock tracking (made-to-order dishes, services) are
    sold without touching inventory.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the product",
    )

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="products",
        help_text="Tenant that owns this product",
    )

    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
        help_text="Product category",
    )

    name = models.CharField(max_length=255, help_text="Product name")

    sku = models.CharField(max_length=100, help_text="Base stock keeping unit")

    description = models.TextField(blank=True, help_text="Product description")

    image = models.CharField(
        max_length=500, blank=True, help_text="Path of the product image under the uploads root"
    )

    track_stock = models.BooleanField(
        default=True,
        help_text="Whether sales of this product deduct inventory",
    )

    is_active = models.BooleanField(default=True, help_text="Whether the product is for sale")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "inventory_products"
        ordering = ["name"]
        verbose_name = "Product"
        verbose_name_plural = "Products"
        unique_together = [["tenant", "sku"]]
        indexes = [
            models.Index(fields=["tenant", "is_active"], name="product_tenant_active_idx"),
            models.Index(fields=["tenant", "category"], name="product_tenant_category_idx"),
        ]

    def __str__(self):
        return f"{self.sku} - {self.name}"


class ProductVariant(models.Model):
    """
    A specific SKU permutation of a product (size/color).

    Every product has at least one variant; single-variant businesses
    (restaurants, supermarkets) simply keep one.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the variant",
    )

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="product_variants",
        help_text="Tenant that owns this variant",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="variants",
        help_text="Product this variant belongs to",
    )

    sku = models.CharField(max_length=100, help_text="Variant stock keeping unit")

    barcode = models.CharField(
        max_length=100, blank=True, help_text="Barcode printed on the item (EAN/UPC/custom)"
    )

    size = models.CharField(max_length=50, blank=True, help_text="Size (e.g., M, 42, 1L)")

    color = models.CharField(max_length=50, blank=True, help_text="Color")

    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Selling price per unit",
    )

    cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Purchase cost per unit",
    )

    is_active = models.BooleanField(default=True, help_text="Whether the variant is for sale")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "inventory_product_variants"
        ordering = ["product__name", "sku"]
        verbose_name = "Product Variant"
        verbose_name_plural = "Product Variants"
        unique_together = [["tenant", "sku"]]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "barcode"],
                condition=~Q(barcode=""),
                name="variant_unique_barcode_per_tenant",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "barcode"], name="variant_barcode_idx"),
            models.Index(fields=["product", "is_active"], name="variant_product_active_idx"),
        ]

    def __str__(self):
        label = " / ".join(part for part in [self.size, self.color] if part)
        if label:
            return f"{self.product.name} ({label})"
        return self.product.name


class Inventory(models.Model):
    """
    Stock level of one variant at one branch.

    Quantity never goes below zero; the check constraint backs the stock
    service's own validation.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the stock row",
    )

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="inventory_rows",
        help_text="Tenant that owns this stock row",
    )

    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.CASCADE,
        related_name="inventory",
        help_text="Variant being stocked",
    )

    branch = models.ForeignKey(
        Branch,
        on_delete=models.CASCADE,
        related_name="inventory",
        help_text="Branch holding the stock",
    )

    quantity = models.IntegerField(default=0, help_text="Units on hand")

    min_stock = models.IntegerField(
        default=default_min_stock,
        validators=[MinValueValidator(0)],
        help_text="Low stock alert threshold",
    )

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "inventory_stock"
        ordering = ["-updated_at"]
        verbose_name = "Inventory"
        verbose_name_plural = "Inventory"
        constraints = [
            models.UniqueConstraint(fields=["variant", "branch"], name="inventory_unique_variant_branch"),
            models.CheckConstraint(
                condition=Q(quantity__gte=0), name="inventory_quantity_non_negative"
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "branch"], name="inventory_tenant_branch_idx"),
        ]

    def __str__(self):
        return f"{self.variant} @ {self.branch.name}: {self.quantity}"

    def is_low_stock(self):
        """Check if stock is at or below the alert threshold."""
        return self.quantity <= self.min_stock


class Supplier(models.Model):
    """
    Supplier model for managing vendor relationships.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="suppliers",
        help_text="Tenant that owns this supplier",
    )

    name = models.CharField(max_length=255, help_text="Supplier company name")
    contact_person = models.CharField(
        max_length=255, blank=True, help_text="Primary contact person name"
    )
    email = models.EmailField(blank=True, help_text="Primary email address")
    phone = models.CharField(max_length=20, blank=True, help_text="Primary phone number")
    address = models.TextField(blank=True, help_text="Complete address")

    is_active = models.BooleanField(default=True, help_text="Whether supplier is active")
    notes = models.TextField(blank=True, help_text="Internal notes about supplier")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "inventory_suppliers"
        unique_together = [["tenant", "name"]]
        indexes = [
            models.Index(fields=["tenant", "is_active"], name="supplier_tenant_active_idx"),
        ]
        ordering = ["name"]

    def __str__(self):
        return self.name


class PurchaseOrder(ConcurrentTransitionMixin, models.Model):
    """
    Purchase order from a supplier delivered to one branch.

    State transitions:
    pending → partial → received
    pending/partial → cancelled
    """

    PENDING = "pending"
    PARTIAL = "partial"
    RECEIVED = "received"
    CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (PARTIAL, "Partially Received"),
        (RECEIVED, "Received"),
        (CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="purchase_orders",
        help_text="Tenant that owns this purchase order",
    )

    po_number = models.CharField(max_length=50, help_text="Purchase order number (PO-YYYYMMDD-NNNN)")

    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name="purchase_orders",
        help_text="Supplier for this purchase order",
    )
    branch = models.ForeignKey(
        Branch,
        on_delete=models.PROTECT,
        related_name="purchase_orders",
        help_text="Branch receiving the goods",
    )

    status = FSMField(
        default=PENDING,
        choices=STATUS_CHOICES,
        help_text="Current status of the purchase order",
    )

    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Total cost of all line items",
    )

    created_by = models.ForeignKey(
        User, on_delete=models.PROTECT, related_name="created_purchase_orders"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    received_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True, help_text="Internal notes about this purchase order")

    class Meta:
        db_table = "inventory_purchase_orders"
        unique_together = [["tenant", "po_number"]]
        indexes = [
            models.Index(fields=["tenant", "status"], name="po_tenant_status_idx"),
            models.Index(fields=["tenant", "supplier"], name="po_tenant_supplier_idx"),
        ]
        ordering = ["-created_at"]
        verbose_name = "Purchase Order"
        verbose_name_plural = "Purchase Orders"

    def __str__(self):
        return f"{self.po_number} - {self.supplier.name}"

    @transition(field=status, source=PENDING, target=PARTIAL)
    def mark_partially_received(self):
        """Mark order as partially received."""

    @transition(field=status, source=[PENDING, PARTIAL], target=RECEIVED)
    def mark_received(self):
        """Mark order as fully received."""
        self.received_at = timezone.now()

    @transition(field=status, source=[PENDING, PARTIAL], target=CANCELLED)
    def cancel(self):
        """Cancel the purchase order. Stock already received stays on hand."""
        self.cancelled_at = timezone.now()


class PurchaseOrderItem(models.Model):
    """
    Line items for purchase orders with receiving progress.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name="items",
        help_text="Purchase order this item belongs to",
    )

    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.PROTECT,
        related_name="purchase_items",
        help_text="Variant being purchased",
    )

    quantity = models.IntegerField(validators=[MinValueValidator(1)], help_text="Ordered quantity")
    received_quantity = models.IntegerField(
        default=0, validators=[MinValueValidator(0)], help_text="Quantity received so far"
    )

    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Cost per unit",
    )

    class Meta:
        db_table = "inventory_purchase_order_items"
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(received_quantity__lte=models.F("quantity")),
                name="po_item_received_not_above_ordered",
            ),
        ]

    def __str__(self):
        return f"{self.variant} x{self.quantity}"

    @property
    def total_cost(self):
        return self.unit_cost * self.quantity

    @property
    def remaining_quantity(self):
        """Calculate remaining quantity to be received."""
        return self.quantity - self.received_quantity

    @property
    def is_fully_received(self):
        """Check if item is fully received."""
        return self.received_quantity >= self.quantity


class StockTransfer(ConcurrentTransitionMixin, models.Model):
    """
    Inter-branch stock transfer with FSM workflow.

    State transitions:
    pending → in_transit → received
    pending/in_transit → cancelled

    Shipping deducts stock at the source; receiving adds it at the
    destination. Cancelling a shipped transfer returns stock to the source.
    """

    PENDING = "pending"
    IN_TRANSIT = "in_transit"
    RECEIVED = "received"
    CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (IN_TRANSIT, "In Transit"),
        (RECEIVED, "Received"),
        (CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the transfer",
    )

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="stock_transfers",
        help_text="Tenant that owns this transfer",
    )

    transfer_number = models.CharField(
        max_length=50,
        help_text="Unique transfer number (e.g., TRF-20240115-0001)",
    )

    from_branch = models.ForeignKey(
        Branch,
        on_delete=models.PROTECT,
        related_name="transfers_out",
        help_text="Source branch sending the stock",
    )

    to_branch = models.ForeignKey(
        Branch,
        on_delete=models.PROTECT,
        related_name="transfers_in",
        help_text="Destination branch receiving the stock",
    )

    status = FSMField(
        default=PENDING,
        choices=STATUS_CHOICES,
        help_text="Current status of the transfer",
    )

    requested_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="transfers_requested",
        help_text="User who requested the transfer",
    )

    shipped_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transfers_shipped",
        help_text="User who shipped the transfer",
    )

    received_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transfers_received",
        help_text="User who received the transfer",
    )

    created_at = models.DateTimeField(auto_now_add=True, help_text="When the transfer was requested")
    shipped_at = models.DateTimeField(null=True, blank=True, help_text="When stock left the source")
    received_at = models.DateTimeField(null=True, blank=True, help_text="When stock arrived")
    cancelled_at = models.DateTimeField(null=True, blank=True, help_text="When it was cancelled")

    notes = models.TextField(blank=True, help_text="Additional notes about the transfer")

    class Meta:
        db_table = "inventory_stock_transfers"
        ordering = ["-created_at"]
        verbose_name = "Stock Transfer"
        verbose_name_plural = "Stock Transfers"
        unique_together = [["tenant", "transfer_number"]]
        constraints = [
            models.CheckConstraint(
                condition=~Q(from_branch=models.F("to_branch")),
                name="transfer_distinct_branches",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "status"], name="transfer_tenant_status_idx"),
            models.Index(fields=["tenant", "-created_at"], name="transfer_created_idx"),
        ]

    def __str__(self):
        return f"{self.transfer_number} ({self.from_branch.name} → {self.to_branch.name})"

    @transition(field=status, source=PENDING, target=IN_TRANSIT)
    def ship(self, user):
        """
        Deduct every item at the source branch.

        Raises InsufficientStock when any line is short; the caller's
        transaction rolls back the lines already deducted.
        """
        from .services import deduct_stock

        self.shipped_by = user
        self.shipped_at = timezone.now()

        for item in self.items.select_related("variant__product").order_by("variant_id"):
            deduct_stock(
                item.variant,
                self.from_branch,
                item.quantity,
                reason=f"Transfer {self.transfer_number} to {self.to_branch.name}",
                user=user,
            )

    @transition(field=status, source=IN_TRANSIT, target=RECEIVED)
    def receive(self, user, received_quantities=None):
        """
        Add received quantities at the destination branch.

        Args:
            user: User receiving the transfer
            received_quantities: Dict of item_id -> actual quantity; missing
                items are received in full
        """
        from .services import add_stock

        received_quantities = received_quantities or {}
        self.received_by = user
        self.received_at = timezone.now()

        for item in self.items.select_related("variant__product").order_by("variant_id"):
            actual = received_quantities.get(str(item.id), item.quantity)
            item.received_quantity = actual
            if actual != item.quantity:
                item.has_discrepancy = True
                item.discrepancy_notes = (
                    f"Expected: {item.quantity}, Received: {actual}, "
                    f"Difference: {actual - item.quantity}"
                )
            item.save()

            if actual > 0:
                add_stock(
                    item.variant,
                    self.to_branch,
                    actual,
                    reason=f"Transfer {self.transfer_number} from {self.from_branch.name}",
                    user=user,
                )

    @transition(field=status, source=[PENDING, IN_TRANSIT], target=CANCELLED)
    def cancel(self, user, reason=""):
        """
        Cancel the transfer. Stock already shipped returns to the source.
        """
        from .services import add_stock

        if self.status == self.IN_TRANSIT:
            for item in self.items.select_related("variant__product").order_by("variant_id"):
                add_stock(
                    item.variant,
                    self.from_branch,
                    item.quantity,
                    reason=f"Transfer {self.transfer_number} cancelled",
                    user=user,
                )

        self.cancelled_at = timezone.now()
        if reason:
            self.notes = f"{self.notes}\n\nCancelled by {user.username}: {reason}".strip()


class StockTransferItem(models.Model):
    """
    Individual lines in a stock transfer with discrepancy logging.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the transfer item",
    )

    transfer = models.ForeignKey(
        StockTransfer,
        on_delete=models.CASCADE,
        related_name="items",
        help_text="Transfer this item belongs to",
    )

    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.PROTECT,
        related_name="transfer_items",
        help_text="Variant being transferred",
    )

    quantity = models.IntegerField(
        validators=[MinValueValidator(1)],
        help_text="Quantity shipped",
    )

    received_quantity = models.IntegerField(
        null=True,
        blank=True,
        help_text="Actual quantity received (may be below shipped)",
    )

    has_discrepancy = models.BooleanField(
        default=False,
        help_text="Whether received quantity differs from shipped",
    )

    discrepancy_notes = models.TextField(
        blank=True,
        help_text="Notes about any discrepancies",
    )

    class Meta:
        db_table = "inventory_stock_transfer_items"
        ordering = ["id"]
        unique_together = [["transfer", "variant"]]

    def __str__(self):
        return f"{self.variant} x{self.quantity} ({self.transfer.transfer_number})"
