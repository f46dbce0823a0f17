"""
Admin configuration for inventory models.
"""

from django.contrib import admin

from .models import (
    Category,
    Inventory,
    Product,
    ProductVariant,
    PurchaseOrder,
    PurchaseOrderItem,
    StockTransfer,
    StockTransferItem,
    Supplier,
)


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "tenant", "sort_order", "is_active", "created_at"]
    list_filter = ["is_active", "tenant"]
    search_fields = ["name", "description"]
    readonly_fields = ["created_at", "updated_at"]


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ["sku", "barcode", "size", "color", "price", "cost", "is_active"]


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin interface for Product with its variants inline."""

    list_display = ["sku", "name", "category", "tenant", "track_stock", "is_active"]
    list_filter = ["is_active", "track_stock", "tenant"]
    search_fields = ["sku", "name", "variants__sku", "variants__barcode"]
    readonly_fields = ["created_at", "updated_at"]
    inlines = [ProductVariantInline]
    fieldsets = (
        (
            "Basic Information",
            {
                "fields": ("tenant", "sku", "name", "category", "description", "image"),
            },
        ),
        (
            "Status",
            {
                "fields": ("track_stock", "is_active"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )


@admin.register(Inventory)
class InventoryAdmin(admin.ModelAdmin):
    list_display = ["variant", "branch", "quantity", "min_stock", "updated_at"]
    list_filter = ["branch", "tenant"]
    search_fields = ["variant__sku", "variant__barcode", "variant__product__name"]
    readonly_fields = ["updated_at"]


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ["name", "contact_person", "phone", "tenant", "is_active"]
    list_filter = ["is_active", "tenant"]
    search_fields = ["name", "contact_person", "email", "phone"]


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    readonly_fields = ["received_quantity"]


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ["po_number", "supplier", "branch", "status", "total", "created_at"]
    list_filter = ["status", "tenant"]
    search_fields = ["po_number", "supplier__name"]
    readonly_fields = ["po_number", "status", "created_at", "received_at", "cancelled_at"]
    inlines = [PurchaseOrderItemInline]


class StockTransferItemInline(admin.TabularInline):
    model = StockTransferItem
    extra = 0
    readonly_fields = ["received_quantity", "has_discrepancy", "discrepancy_notes"]


@admin.register(StockTransfer)
class StockTransferAdmin(admin.ModelAdmin):
    """Admin interface for StockTransfer. Status only moves through the API."""

    list_display = ["transfer_number", "from_branch", "to_branch", "status", "created_at"]
    list_filter = ["status", "tenant"]
    search_fields = ["transfer_number", "notes"]
    readonly_fields = [
        "transfer_number",
        "status",
        "created_at",
        "shipped_at",
        "received_at",
        "cancelled_at",
    ]
    inlines = [StockTransferItemInline]
