"""
Serializers for tables, orders and checkout.
"""

from decimal import Decimal

from rest_framework import serializers

from apps.sales.models import Sale
from apps.sales.serializers import MONEY, resolve_variants

from .models import Order, OrderItem, RestaurantTable


class RestaurantTableSerializer(serializers.ModelSerializer):
    branch_name = serializers.CharField(source="branch.name", read_only=True)

    class Meta:
        model = RestaurantTable
        fields = [
            "id",
            "branch",
            "branch_name",
            "name",
            "capacity",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_branch(self, value):
        if value.tenant_id != self.context["tenant"].id:
            raise serializers.ValidationError("الفرع غير موجود")
        return value

    def validate(self, data):
        branch = data.get("branch", getattr(self.instance, "branch", None))
        name = data.get("name", getattr(self.instance, "name", None))
        queryset = RestaurantTable.objects.filter(branch=branch, name=name)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError({"name": "يوجد طاولة بنفس الاسم في هذا الفرع"})
        return data


class OrderItemInputSerializer(serializers.Serializer):
    variant_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(required=False, allow_null=True, min_value=0, **MONEY)
    notes = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class OrderCreateSerializer(serializers.Serializer):
    table_id = serializers.UUIDField(required=False, allow_null=True)
    order_type = serializers.ChoiceField(
        choices=[choice for choice, _ in Order.ORDER_TYPE_CHOICES], default=Order.DINE_IN
    )
    items = OrderItemInputSerializer(many=True, allow_empty=False)
    customer_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_table_id(self, value):
        if value is None:
            return None
        table = RestaurantTable.objects.filter(tenant=self.context["tenant"], id=value).first()
        if table is None:
            raise serializers.ValidationError("الطاولة غير موجودة")
        return table

    def validate(self, data):
        data["table"] = data.pop("table_id", None)
        data["items"] = resolve_variants(self.context["tenant"], data["items"])
        return data


class OrderItemsAddSerializer(serializers.Serializer):
    items = OrderItemInputSerializer(many=True, allow_empty=False)

    def validate(self, data):
        data["items"] = resolve_variants(self.context["tenant"], data["items"])
        return data


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[choice for choice, _ in Order.STATUS_CHOICES])


class CheckoutSerializer(serializers.Serializer):
    discount = serializers.DecimalField(required=False, default=Decimal("0.00"), min_value=0, **MONEY)
    discount_type = serializers.ChoiceField(
        choices=[Sale.DISCOUNT_AMOUNT, Sale.DISCOUNT_PERCENTAGE], default=Sale.DISCOUNT_AMOUNT
    )
    coupon_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    tax = serializers.DecimalField(required=False, default=Decimal("0.00"), min_value=0, **MONEY)
    paid = serializers.DecimalField(required=False, allow_null=True, min_value=0, **MONEY)
    payment_method = serializers.ChoiceField(
        choices=[Sale.CASH, Sale.CARD, Sale.OTHER], default=Sale.CASH
    )
    customer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")

    def validate(self, data):
        if data["discount_type"] == Sale.DISCOUNT_PERCENTAGE and data["discount"] > 100:
            raise serializers.ValidationError({"discount": "نسبة الخصم لا يمكن أن تتجاوز 100%"})
        return data


class OrderItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="variant.product.name", read_only=True)
    sku = serializers.CharField(source="variant.sku", read_only=True)
    total = serializers.DecimalField(read_only=True, **MONEY)

    class Meta:
        model = OrderItem
        fields = ["id", "variant", "sku", "product_name", "quantity", "unit_price", "total", "notes"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    table_name = serializers.CharField(source="table.name", read_only=True, default=None)
    branch_name = serializers.CharField(source="branch.name", read_only=True)
    user_name = serializers.CharField(source="user.username", read_only=True)
    invoice_number = serializers.CharField(source="sale.invoice_number", read_only=True, default=None)
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "order_type",
            "status",
            "table",
            "table_name",
            "branch",
            "branch_name",
            "user_name",
            "subtotal",
            "discount",
            "total",
            "customer_name",
            "notes",
            "items",
            "sale",
            "invoice_number",
            "created_at",
            "paid_at",
            "cancelled_at",
        ]
        read_only_fields = fields
