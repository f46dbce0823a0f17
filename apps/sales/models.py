"""
Sales models for the multi-tenant POS platform.

- Sales and sale items (inventory is deducted by the sale service)
- Refunds against sale items
- Discounts and coupon codes
- Cashier shifts with cash deposits/withdrawals
- Installment plans and their payments
"""

import uuid
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from apps.core.exceptions import (
    CouponExpired,
    CouponInactive,
    CouponMinimumNotMet,
    CouponNotStarted,
    CouponUsageExceeded,
)
from apps.core.models import Branch, Tenant, User
from apps.inventory.models import ProductVariant

CENT = Decimal("0.01")


class Discount(models.Model):
    """
    Discount rule, optionally redeemable by coupon code.

    Validation order when a code is redeemed: active, started, not expired,
    usage limit, minimum purchase.
    """

    PERCENTAGE = "PERCENTAGE"
    AMOUNT = "AMOUNT"

    TYPE_CHOICES = [
        (PERCENTAGE, "Percentage"),
        (AMOUNT, "Fixed Amount"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="discounts",
        help_text="Tenant that owns this discount",
    )

    name = models.CharField(max_length=100, help_text="Display name of the discount")

    code = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        help_text="Coupon code entered at checkout (optional)",
    )

    discount_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=PERCENTAGE)

    value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Percentage (0-100) or fixed amount",
    )

    min_purchase = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Minimum subtotal required to use the discount",
    )

    max_uses = models.PositiveIntegerField(
        null=True, blank=True, help_text="Maximum number of redemptions (empty = unlimited)"
    )

    used_count = models.PositiveIntegerField(default=0, help_text="Number of redemptions so far")

    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "sales_discounts"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "code"],
                condition=Q(code__isnull=False),
                name="discount_unique_code_per_tenant",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "is_active"], name="discount_tenant_active_idx"),
        ]

    def __str__(self):
        return self.code or self.name

    def validate_for(self, subtotal, now=None):
        """
        Check the discount can be redeemed for a subtotal.

        Raises:
            InvalidCoupon subclass describing the first failed rule
        """
        now = now or timezone.now()
        if not self.is_active:
            raise CouponInactive()
        if self.start_date and self.start_date > now:
            raise CouponNotStarted()
        if self.end_date and self.end_date < now:
            raise CouponExpired()
        if self.max_uses is not None and self.used_count >= self.max_uses:
            raise CouponUsageExceeded()
        if self.min_purchase is not None and subtotal < self.min_purchase:
            raise CouponMinimumNotMet()

    def calculate(self, subtotal):
        """Discount amount for a subtotal, never above the subtotal."""
        if self.discount_type == self.PERCENTAGE:
            amount = (subtotal * self.value / Decimal("100")).quantize(CENT)
        else:
            amount = self.value
        return min(amount, subtotal)


class Shift(models.Model):
    """
    A cashier's register session on one branch.

    Only one shift per branch may be open at a time.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="shifts")

    branch = models.ForeignKey(
        Branch,
        on_delete=models.PROTECT,
        related_name="shifts",
        help_text="Branch whose register this shift covers",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="shifts",
        help_text="Cashier who opened the shift",
    )

    opening_balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Cash in the drawer when the shift opened",
    )

    expected_cash = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    actual_cash = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    difference = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Actual minus expected cash at close",
    )

    notes = models.TextField(blank=True)

    opened_at = models.DateTimeField(auto_now_add=True)
    closed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "sales_shifts"
        ordering = ["-opened_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["branch"],
                condition=Q(closed_at__isnull=True),
                name="one_open_shift_per_branch",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "-opened_at"], name="shift_tenant_opened_idx"),
            models.Index(fields=["user", "closed_at"], name="shift_user_closed_idx"),
        ]

    def __str__(self):
        return f"{self.branch.name} - {self.user.username} ({self.opened_at:%Y-%m-%d %H:%M})"

    @property
    def is_open(self):
        return self.closed_at is None


class CashTransaction(models.Model):
    """Cash put into or taken out of the drawer during a shift."""

    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"

    TYPE_CHOICES = [
        (DEPOSIT, "Deposit"),
        (WITHDRAWAL, "Withdrawal"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shift = models.ForeignKey(Shift, on_delete=models.CASCADE, related_name="transactions")
    transaction_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(CENT)],
    )
    reason = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name="cash_transactions")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "sales_cash_transactions"
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.transaction_type} {self.amount}"


class Sale(ConcurrentTransitionMixin, models.Model):
    """
    A completed point-of-sale transaction.

    Totals are fixed at creation: ``total = subtotal - discount + tax``
    (never below zero). Refunds move the status to PARTIALLY_REFUNDED or
    REFUNDED and accumulate ``refunded_total``.
    """

    # Payment method choices
    CASH = "CASH"
    CARD = "CARD"
    INSTALLMENT = "INSTALLMENT"
    OTHER = "OTHER"

    PAYMENT_METHOD_CHOICES = [
        (CASH, "Cash"),
        (CARD, "Card"),
        (INSTALLMENT, "Installment"),
        (OTHER, "Other"),
    ]

    # Discount kinds
    DISCOUNT_AMOUNT = "amount"
    DISCOUNT_PERCENTAGE = "percentage"
    DISCOUNT_COUPON = "coupon"

    DISCOUNT_TYPE_CHOICES = [
        (DISCOUNT_AMOUNT, "Amount"),
        (DISCOUNT_PERCENTAGE, "Percentage"),
        (DISCOUNT_COUPON, "Coupon"),
    ]

    # Status choices
    COMPLETED = "COMPLETED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"
    REFUNDED = "REFUNDED"

    STATUS_CHOICES = [
        (COMPLETED, "Completed"),
        (PARTIALLY_REFUNDED, "Partially Refunded"),
        (REFUNDED, "Refunded"),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the sale",
    )

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="sales",
        help_text="Tenant that owns this sale",
    )

    invoice_number = models.CharField(
        max_length=50,
        help_text="Invoice number unique within tenant (e.g., 'INV-20240115-0001')",
    )

    branch = models.ForeignKey(
        Branch,
        on_delete=models.PROTECT,
        related_name="sales",
        help_text="Branch where the sale was made",
    )

    cashier = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="sales_processed",
        help_text="User who processed the sale",
    )

    shift = models.ForeignKey(
        Shift,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
        help_text="Cashier's open shift when the sale was made",
    )

    coupon = models.ForeignKey(
        Discount,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
        help_text="Coupon redeemed on this sale",
    )

    # Financial details
    subtotal = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Sum of line totals",
    )

    discount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sale-level discount amount",
    )

    discount_type = models.CharField(
        max_length=20, choices=DISCOUNT_TYPE_CHOICES, default=DISCOUNT_AMOUNT
    )

    tax = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Tax amount",
    )

    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Total amount (subtotal - discount + tax)",
    )

    paid = models.DecimalField(max_digits=12, decimal_places=2, help_text="Amount tendered")

    change = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00"), help_text="Change returned"
    )

    payment_method = models.CharField(
        max_length=20,
        choices=PAYMENT_METHOD_CHOICES,
        default=CASH,
        help_text="Payment method used",
    )

    status = FSMField(default=COMPLETED, choices=STATUS_CHOICES)

    refunded_total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Total amount refunded so far",
    )

    customer_name = models.CharField(max_length=255, blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)

    notes = models.TextField(blank=True, help_text="Additional notes about the sale")

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="When the sale was created",
    )

    class Meta:
        db_table = "sales"
        ordering = ["-created_at"]
        verbose_name = "Sale"
        verbose_name_plural = "Sales"
        unique_together = [["tenant", "invoice_number"]]
        indexes = [
            models.Index(fields=["tenant", "-created_at"], name="sale_tenant_date_idx"),
            models.Index(fields=["tenant", "status"], name="sale_tenant_status_idx"),
            models.Index(fields=["tenant", "branch", "-created_at"], name="sale_branch_date_idx"),
            models.Index(fields=["shift", "payment_method"], name="sale_shift_payment_idx"),
        ]

    def __str__(self):
        return f"{self.invoice_number} - {self.total}"

    @transition(field=status, source=[COMPLETED, PARTIALLY_REFUNDED], target=PARTIALLY_REFUNDED)
    def mark_partially_refunded(self):
        """Some items were returned."""

    @transition(field=status, source=[COMPLETED, PARTIALLY_REFUNDED], target=REFUNDED)
    def mark_refunded(self):
        """Every item was returned."""

    @property
    def refundable_amount(self):
        return self.total - self.refunded_total


class SaleItem(models.Model):
    """
    One line of a sale.

    Product name and prices are copied at sale time so later catalog
    changes do not alter the receipt.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the sale item",
    )

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="items",
        help_text="Sale that this item belongs to",
    )

    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.PROTECT,
        related_name="sale_items",
        help_text="Variant that was sold",
    )

    product_name = models.CharField(max_length=255, help_text="Product name at time of sale")

    quantity = models.IntegerField(
        validators=[MinValueValidator(1)],
        help_text="Quantity sold",
    )

    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Unit price at time of sale (may differ from current price)",
    )

    discount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Discount applied to this specific line",
    )

    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Line total (quantity * unit_price - discount)",
    )

    returned_quantity = models.IntegerField(default=0, help_text="Quantity refunded so far")

    class Meta:
        db_table = "sale_items"
        ordering = ["product_name"]
        verbose_name = "Sale Item"
        verbose_name_plural = "Sale Items"
        constraints = [
            models.CheckConstraint(
                condition=Q(returned_quantity__lte=F("quantity")),
                name="sale_item_returned_not_above_sold",
            ),
        ]

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"

    @property
    def returnable_quantity(self):
        return self.quantity - self.returned_quantity


class Refund(models.Model):
    """A return of sale items; stock goes back to the sale's branch."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="refunds")
    refund_number = models.CharField(max_length=50, help_text="e.g. RET-20240115-0001")
    sale = models.ForeignKey(Sale, on_delete=models.PROTECT, related_name="refunds")
    shift = models.ForeignKey(
        Shift,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="refunds",
        help_text="Open shift the cash was paid out from",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    reason = models.CharField(max_length=255, blank=True)
    processed_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name="refunds")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "sales_refunds"
        ordering = ["-created_at"]
        unique_together = [["tenant", "refund_number"]]

    def __str__(self):
        return f"{self.refund_number} ({self.sale.invoice_number})"


class RefundItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    refund = models.ForeignKey(Refund, on_delete=models.CASCADE, related_name="items")
    sale_item = models.ForeignKey(SaleItem, on_delete=models.PROTECT, related_name="refund_items")
    quantity = models.IntegerField(validators=[MinValueValidator(1)])
    amount = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = "sales_refund_items"

    def __str__(self):
        return f"{self.sale_item.product_name} x {self.quantity}"


class Installment(ConcurrentTransitionMixin, models.Model):
    """
    Installment plan for a sale paid over several months.

    ``remaining_amount`` starts at total minus down payment and drops with
    every payment; the plan completes when it reaches zero.
    """

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"

    STATUS_CHOICES = [
        (ACTIVE, "Active"),
        (COMPLETED, "Completed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="installments")
    sale = models.OneToOneField(Sale, on_delete=models.PROTECT, related_name="installment")
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name="installments")
    created_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name="installments")

    customer_name = models.CharField(max_length=255)
    customer_phone = models.CharField(max_length=20, blank=True)

    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    down_payment = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    remaining_amount = models.DecimalField(max_digits=12, decimal_places=2)
    number_of_payments = models.PositiveIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(120)]
    )
    payment_per_installment = models.DecimalField(max_digits=12, decimal_places=2)
    next_due_date = models.DateField()

    status = FSMField(default=ACTIVE, choices=STATUS_CHOICES)

    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "sales_installments"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["tenant", "status", "next_due_date"], name="installment_due_idx"),
        ]

    def __str__(self):
        return f"{self.customer_name} - {self.sale.invoice_number}"

    @transition(field=status, source=ACTIVE, target=COMPLETED)
    def complete(self):
        self.completed_at = timezone.now()

    def is_overdue(self, today=None):
        today = today or timezone.localdate()
        return self.status == self.ACTIVE and self.next_due_date < today


class InstallmentPayment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    installment = models.ForeignKey(Installment, on_delete=models.CASCADE, related_name="payments")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(
        max_length=20, choices=Sale.PAYMENT_METHOD_CHOICES, default=Sale.CASH
    )
    notes = models.TextField(blank=True)
    received_by = models.ForeignKey(
        User, on_delete=models.PROTECT, related_name="installment_payments"
    )
    paid_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "sales_installment_payments"
        ordering = ["-paid_at"]

    def __str__(self):
        return f"{self.installment} - {self.amount}"
