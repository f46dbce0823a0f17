"""
Django admin configuration for restaurant models.
"""

from django.contrib import admin

from .models import Order, OrderItem, RestaurantTable


@admin.register(RestaurantTable)
class RestaurantTableAdmin(admin.ModelAdmin):
    list_display = ["name", "branch", "capacity", "status", "tenant"]
    list_filter = ["status", "branch"]
    search_fields = ["name", "branch__name", "tenant__company_name"]


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ["id"]
    fields = ["variant", "quantity", "unit_price", "notes"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Orders change state through the API; the admin is read-mostly."""

    list_display = ["order_number", "order_type", "status", "table", "branch", "total", "created_at"]
    list_filter = ["status", "order_type", "created_at"]
    search_fields = ["order_number", "customer_name", "tenant__company_name"]
    readonly_fields = [
        "id",
        "order_number",
        "status",
        "subtotal",
        "discount",
        "total",
        "sale",
        "created_at",
        "updated_at",
        "paid_at",
        "cancelled_at",
    ]
    inlines = [OrderItemInline]
    date_hierarchy = "created_at"
