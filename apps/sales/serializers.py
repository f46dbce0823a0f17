"""
Serializers for the sales app.

- POS sale input and sale detail output
- Refund input
- Discounts and coupon lookups
- Shifts, cash transactions and installment plans
"""

from decimal import Decimal

from rest_framework import serializers

from apps.inventory.models import ProductVariant

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

MONEY = {"max_digits": 12, "decimal_places": 2}


class SaleItemInputSerializer(serializers.Serializer):
    """One POS line: variant, quantity and optional price override."""

    variant_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(required=False, allow_null=True, min_value=0, **MONEY)
    discount = serializers.DecimalField(
        required=False, default=Decimal("0.00"), min_value=0, **MONEY
    )


class InstallmentInputSerializer(serializers.Serializer):
    number_of_payments = serializers.IntegerField(min_value=1, max_value=120)
    down_payment = serializers.DecimalField(required=False, min_value=0, **MONEY)
    customer_name = serializers.CharField(max_length=255)
    customer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


def resolve_variants(tenant, items):
    """
    Replace ``variant_id`` in each line with the tenant's active variant.

    Raises:
        ValidationError: When a variant is unknown or inactive
    """
    variant_ids = {item["variant_id"] for item in items}
    variants = {
        variant.id: variant
        for variant in ProductVariant.objects.select_related("product").filter(
            tenant=tenant, id__in=variant_ids, is_active=True, product__is_active=True
        )
    }
    missing = [str(variant_id) for variant_id in variant_ids if variant_id not in variants]
    if missing:
        raise serializers.ValidationError(
            {"items": f"المنتج غير موجود أو غير نشط: {', '.join(sorted(missing))}"}
        )

    resolved = []
    for item in items:
        line = dict(item)
        line["variant"] = variants[line.pop("variant_id")]
        resolved.append(line)
    return resolved


class SaleCreateSerializer(serializers.Serializer):
    """
    POS sale input.

    discount_type applies to ``discount``; ``coupon_code`` replaces both.
    """

    items = SaleItemInputSerializer(many=True, allow_empty=False)
    discount = serializers.DecimalField(required=False, default=Decimal("0.00"), min_value=0, **MONEY)
    discount_type = serializers.ChoiceField(
        choices=[Sale.DISCOUNT_AMOUNT, Sale.DISCOUNT_PERCENTAGE], default=Sale.DISCOUNT_AMOUNT
    )
    coupon_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    tax = serializers.DecimalField(required=False, default=Decimal("0.00"), min_value=0, **MONEY)
    paid = serializers.DecimalField(required=False, allow_null=True, min_value=0, **MONEY)
    payment_method = serializers.ChoiceField(
        choices=[choice for choice, _ in Sale.PAYMENT_METHOD_CHOICES], default=Sale.CASH
    )
    installment = InstallmentInputSerializer(required=False)
    customer_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    customer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, data):
        if data["discount_type"] == Sale.DISCOUNT_PERCENTAGE and data["discount"] > 100:
            raise serializers.ValidationError({"discount": "نسبة الخصم لا يمكن أن تتجاوز 100%"})
        if data["payment_method"] == Sale.INSTALLMENT and not data.get("installment"):
            raise serializers.ValidationError({"installment": "بيانات التقسيط مطلوبة"})
        data["items"] = resolve_variants(self.context["tenant"], data["items"])
        return data


class SaleItemSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(source="variant.sku", read_only=True)
    returnable_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = SaleItem
        fields = [
            "id",
            "variant",
            "sku",
            "product_name",
            "quantity",
            "unit_price",
            "discount",
            "total",
            "returned_quantity",
            "returnable_quantity",
        ]
        read_only_fields = fields


class SaleListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for sale lists."""

    branch_name = serializers.CharField(source="branch.name", read_only=True)
    cashier_name = serializers.CharField(source="cashier.username", read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "invoice_number",
            "branch",
            "branch_name",
            "cashier_name",
            "total",
            "payment_method",
            "status",
            "refunded_total",
            "created_at",
        ]
        read_only_fields = fields


class SaleDetailSerializer(serializers.ModelSerializer):
    """Full sale with its lines, as printed on the receipt."""

    branch_name = serializers.CharField(source="branch.name", read_only=True)
    cashier_name = serializers.CharField(source="cashier.username", read_only=True)
    coupon_code = serializers.CharField(source="coupon.code", read_only=True, default=None)
    items = SaleItemSerializer(many=True, read_only=True)
    installment_id = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = [
            "id",
            "invoice_number",
            "branch",
            "branch_name",
            "cashier",
            "cashier_name",
            "shift",
            "subtotal",
            "discount",
            "discount_type",
            "coupon_code",
            "tax",
            "total",
            "paid",
            "change",
            "payment_method",
            "status",
            "refunded_total",
            "customer_name",
            "customer_phone",
            "notes",
            "items",
            "installment_id",
            "created_at",
        ]
        read_only_fields = fields

    def get_installment_id(self, obj):
        installment = Installment.objects.filter(sale=obj).values_list("id", flat=True).first()
        return str(installment) if installment else None


class RefundLineSerializer(serializers.Serializer):
    sale_item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class RefundCreateSerializer(serializers.Serializer):
    items = RefundLineSerializer(many=True, allow_empty=False)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class RefundItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="sale_item.product_name", read_only=True)

    class Meta:
        model = RefundItem
        fields = ["id", "sale_item", "product_name", "quantity", "amount"]
        read_only_fields = fields


class RefundSerializer(serializers.ModelSerializer):
    invoice_number = serializers.CharField(source="sale.invoice_number", read_only=True)
    items = RefundItemSerializer(many=True, read_only=True)

    class Meta:
        model = Refund
        fields = [
            "id",
            "refund_number",
            "sale",
            "invoice_number",
            "amount",
            "reason",
            "processed_by",
            "items",
            "created_at",
        ]
        read_only_fields = fields


class DiscountSerializer(serializers.ModelSerializer):
    """Serializer for Discount model."""

    class Meta:
        model = Discount
        fields = [
            "id",
            "name",
            "code",
            "discount_type",
            "value",
            "min_purchase",
            "max_uses",
            "used_count",
            "start_date",
            "end_date",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "used_count", "created_at", "updated_at"]

    def validate_code(self, value):
        if not value:
            return None
        queryset = Discount.objects.filter(tenant=self.context["tenant"], code=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("كود الخصم موجود بالفعل")
        return value

    def validate(self, data):
        discount_type = data.get("discount_type", getattr(self.instance, "discount_type", None))
        value = data.get("value", getattr(self.instance, "value", None))
        if discount_type == Discount.PERCENTAGE and value is not None and value > 100:
            raise serializers.ValidationError({"value": "نسبة الخصم لا يمكن أن تتجاوز 100%"})

        start_date = data.get("start_date", getattr(self.instance, "start_date", None))
        end_date = data.get("end_date", getattr(self.instance, "end_date", None))
        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({"end_date": "تاريخ الانتهاء قبل تاريخ البداية"})
        return data


class CashTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = CashTransaction
        fields = ["id", "transaction_type", "amount", "reason", "created_by", "created_at"]
        read_only_fields = ["id", "created_by", "created_at"]


class ShiftSerializer(serializers.ModelSerializer):
    branch_name = serializers.CharField(source="branch.name", read_only=True)
    user_name = serializers.CharField(source="user.username", read_only=True)
    is_open = serializers.BooleanField(read_only=True)
    transactions = CashTransactionSerializer(many=True, read_only=True)

    class Meta:
        model = Shift
        fields = [
            "id",
            "branch",
            "branch_name",
            "user",
            "user_name",
            "opening_balance",
            "expected_cash",
            "actual_cash",
            "difference",
            "notes",
            "is_open",
            "transactions",
            "opened_at",
            "closed_at",
        ]
        read_only_fields = fields


class ShiftOpenSerializer(serializers.Serializer):
    branch_id = serializers.UUIDField(required=False)
    opening_balance = serializers.DecimalField(min_value=0, **MONEY)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ShiftCloseSerializer(serializers.Serializer):
    actual_cash = serializers.DecimalField(min_value=0, **MONEY)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class InstallmentPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = InstallmentPayment
        fields = ["id", "amount", "payment_method", "notes", "received_by", "paid_at"]
        read_only_fields = ["id", "received_by", "paid_at"]


class InstallmentSerializer(serializers.ModelSerializer):
    invoice_number = serializers.CharField(source="sale.invoice_number", read_only=True)
    branch_name = serializers.CharField(source="branch.name", read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)
    payments = InstallmentPaymentSerializer(many=True, read_only=True)

    class Meta:
        model = Installment
        fields = [
            "id",
            "sale",
            "invoice_number",
            "branch",
            "branch_name",
            "customer_name",
            "customer_phone",
            "total_amount",
            "down_payment",
            "remaining_amount",
            "number_of_payments",
            "payment_per_installment",
            "next_due_date",
            "status",
            "is_overdue",
            "notes",
            "payments",
            "created_at",
            "completed_at",
        ]
        read_only_fields = fields


class InstallmentPaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(**MONEY)
    payment_method = serializers.ChoiceField(
        choices=[Sale.CASH, Sale.CARD, Sale.OTHER], default=Sale.CASH
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
