"""
Restaurant and cafe models.

- Dining tables per branch
- Kitchen orders and their items (converted to a Sale at checkout)
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from apps.core.models import Branch, Tenant, User
from apps.inventory.models import ProductVariant


class RestaurantTable(models.Model):
    """A dining table. Names are unique within a branch."""

    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"

    STATUS_CHOICES = [
        (AVAILABLE, "Available"),
        (OCCUPIED, "Occupied"),
        (RESERVED, "Reserved"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="tables")

    branch = models.ForeignKey(
        Branch,
        on_delete=models.CASCADE,
        related_name="tables",
        help_text="Branch the table is in",
    )

    name = models.CharField(max_length=50, help_text="Table label, e.g. 'T1' or 'Terrace 3'")

    capacity = models.PositiveIntegerField(
        default=4, validators=[MinValueValidator(1)], help_text="Number of seats"
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=AVAILABLE)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "restaurant_tables"
        ordering = ["branch", "name"]
        unique_together = [["branch", "name"]]
        indexes = [
            models.Index(fields=["tenant", "branch", "status"], name="table_branch_status_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.branch.name})"

    def has_active_orders(self, exclude=None):
        orders = self.orders.filter(status__in=Order.ACTIVE_STATUSES)
        if exclude is not None:
            orders = orders.exclude(pk=exclude.pk)
        return orders.exists()


class Order(ConcurrentTransitionMixin, models.Model):
    """
    Kitchen order for dine-in, takeaway or delivery.

    State transitions (forward only, steps may be skipped):
    pending → preparing → ready → served → paid
    any active status → cancelled

    ``paid`` is set only by checkout, which creates the Sale.
    """

    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    PAID = "paid"
    CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (PREPARING, "Preparing"),
        (READY, "Ready"),
        (SERVED, "Served"),
        (PAID, "Paid"),
        (CANCELLED, "Cancelled"),
    ]

    # Forward order of the kitchen flow
    STATUS_SEQUENCE = [PENDING, PREPARING, READY, SERVED, PAID]
    ACTIVE_STATUSES = [PENDING, PREPARING, READY, SERVED]
    KITCHEN_STATUSES = [PENDING, PREPARING, READY]
    EDITABLE_STATUSES = [PENDING, PREPARING]

    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"

    ORDER_TYPE_CHOICES = [
        (DINE_IN, "Dine In"),
        (TAKEAWAY, "Takeaway"),
        (DELIVERY, "Delivery"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="orders")

    order_number = models.CharField(
        max_length=50,
        help_text="Order number unique within tenant (e.g., 'ORD-20240115-0001')",
    )

    order_type = models.CharField(max_length=20, choices=ORDER_TYPE_CHOICES, default=DINE_IN)

    table = models.ForeignKey(
        RestaurantTable,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )

    branch = models.ForeignKey(
        Branch,
        on_delete=models.PROTECT,
        related_name="orders",
        help_text="Branch whose stock is deducted at checkout",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="orders",
        help_text="Waiter or cashier who took the order",
    )

    status = FSMField(default=PENDING, choices=STATUS_CHOICES)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    sale = models.OneToOneField(
        "sales.Sale",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order",
        help_text="Sale created when the order was paid",
    )

    customer_name = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "restaurant_orders"
        ordering = ["-created_at"]
        unique_together = [["tenant", "order_number"]]
        indexes = [
            models.Index(fields=["tenant", "status"], name="order_tenant_status_idx"),
            models.Index(fields=["tenant", "branch", "-created_at"], name="order_branch_date_idx"),
            models.Index(fields=["table", "status"], name="order_table_status_idx"),
        ]

    def __str__(self):
        return self.order_number

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    @property
    def is_editable(self):
        return self.status in self.EDITABLE_STATUSES

    def is_forward(self, target):
        """True when ``target`` comes later than the current status in the kitchen flow."""
        if self.status not in self.STATUS_SEQUENCE or target not in self.STATUS_SEQUENCE:
            return False
        return self.STATUS_SEQUENCE.index(target) > self.STATUS_SEQUENCE.index(self.status)

    @transition(field=status, source=PENDING, target=PREPARING)
    def start_preparing(self):
        pass

    @transition(field=status, source=[PENDING, PREPARING], target=READY)
    def mark_ready(self):
        pass

    @transition(field=status, source=[PENDING, PREPARING, READY], target=SERVED)
    def mark_served(self):
        pass

    @transition(field=status, source=ACTIVE_STATUSES, target=PAID)
    def mark_paid(self, sale):
        self.sale = sale
        self.paid_at = timezone.now()

    @transition(field=status, source=ACTIVE_STATUSES, target=CANCELLED)
    def cancel(self):
        self.cancelled_at = timezone.now()

    def recalculate_totals(self):
        subtotal = sum((item.total for item in self.items.all()), Decimal("0.00"))
        self.subtotal = subtotal
        self.total = max(subtotal - self.discount, Decimal("0.00"))


class OrderItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")

    variant = models.ForeignKey(ProductVariant, on_delete=models.PROTECT, related_name="order_items")

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Price per unit when ordered",
    )

    notes = models.CharField(max_length=255, blank=True, help_text="Kitchen note, e.g. 'no onions'")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "restaurant_order_items"
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.quantity} x {self.variant}"

    @property
    def total(self):
        return self.unit_price * self.quantity
