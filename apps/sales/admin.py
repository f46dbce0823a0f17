"""
Django admin configuration for sales models.
"""

from django.contrib import admin

from .models import (
    CashTransaction,
    Discount,
    Installment,
    InstallmentPayment,
    Refund,
    RefundItem,
    Sale,
    SaleItem,
    Shift,
)


class SaleItemInline(admin.TabularInline):
    """Inline admin for SaleItem model."""

    model = SaleItem
    extra = 0
    readonly_fields = ["id", "total", "returned_quantity"]
    fields = ["variant", "product_name", "quantity", "unit_price", "discount", "total", "returned_quantity"]


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    """Admin interface for Sale model. Sales are never edited after checkout."""

    list_display = [
        "invoice_number",
        "branch",
        "cashier",
        "total",
        "payment_method",
        "status",
        "created_at",
    ]
    list_filter = ["status", "payment_method", "tenant", "created_at"]
    search_fields = ["invoice_number", "customer_name", "customer_phone"]
    readonly_fields = [
        "id",
        "invoice_number",
        "subtotal",
        "discount",
        "tax",
        "total",
        "paid",
        "change",
        "status",
        "refunded_total",
        "created_at",
    ]
    inlines = [SaleItemInline]
    fieldsets = [
        (
            "Sale",
            {
                "fields": ["id", "tenant", "invoice_number", "branch", "cashier", "shift", "status"],
            },
        ),
        (
            "Amounts",
            {
                "fields": [
                    "subtotal",
                    "discount",
                    "coupon",
                    "tax",
                    "total",
                    "paid",
                    "change",
                    "payment_method",
                    "refunded_total",
                ],
            },
        ),
        (
            "Customer",
            {
                "fields": ["customer_name", "customer_phone", "notes"],
            },
        ),
    ]


class RefundItemInline(admin.TabularInline):
    model = RefundItem
    extra = 0
    readonly_fields = ["sale_item", "quantity", "amount"]


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = ["refund_number", "sale", "amount", "processed_by", "created_at"]
    list_filter = ["tenant", "created_at"]
    search_fields = ["refund_number", "sale__invoice_number"]
    inlines = [RefundItemInline]


@admin.register(Discount)
class DiscountAdmin(admin.ModelAdmin):
    list_display = ["name", "code", "discount_type", "value", "used_count", "max_uses", "is_active"]
    list_filter = ["discount_type", "is_active", "tenant"]
    search_fields = ["name", "code"]
    readonly_fields = ["used_count"]


class CashTransactionInline(admin.TabularInline):
    model = CashTransaction
    extra = 0


@admin.register(Shift)
class ShiftAdmin(admin.ModelAdmin):
    list_display = ["branch", "user", "opening_balance", "expected_cash", "difference", "opened_at", "closed_at"]
    list_filter = ["tenant", "branch"]
    readonly_fields = ["expected_cash", "difference", "opened_at"]
    inlines = [CashTransactionInline]


class InstallmentPaymentInline(admin.TabularInline):
    model = InstallmentPayment
    extra = 0


@admin.register(Installment)
class InstallmentAdmin(admin.ModelAdmin):
    list_display = ["customer_name", "sale", "remaining_amount", "next_due_date", "status"]
    list_filter = ["status", "tenant"]
    search_fields = ["customer_name", "customer_phone", "sale__invoice_number"]
    inlines = [InstallmentPaymentInline]
