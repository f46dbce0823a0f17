"""
Serializers for inventory models.
"""

from django.db import transaction
from django.db.models import Sum

from rest_framework import serializers

from apps.core.models import Branch

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
from .services import STOCK_OPERATIONS, add_stock


def _tenant_branch(tenant, branch_id):
    try:
        return Branch.objects.get(id=branch_id, tenant=tenant, is_active=True)
    except Branch.DoesNotExist:
        raise serializers.ValidationError("الفرع غير موجود")


def _tenant_variant(tenant, variant_id):
    try:
        return ProductVariant.objects.select_related("product").get(id=variant_id, tenant=tenant)
    except ProductVariant.DoesNotExist:
        raise serializers.ValidationError(f"المنتج {variant_id} غير موجود")


class CategorySerializer(serializers.ModelSerializer):
    """Serializer for Category model."""

    products_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = [
            "id",
            "name",
            "description",
            "sort_order",
            "is_active",
            "products_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def get_products_count(self, obj):
        return obj.products.filter(is_active=True).count()

    def validate_name(self, value):
        queryset = Category.objects.filter(tenant=self.context["tenant"], name=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("يوجد تصنيف بنفس الاسم")
        return value


class ProductVariantSerializer(serializers.ModelSerializer):
    """
    Variant with its total stock across branches.

    ``initial_stock`` is write-only and applied at the creating user's branch.
    """

    id = serializers.UUIDField(required=False)
    stock = serializers.SerializerMethodField()
    initial_stock = serializers.IntegerField(write_only=True, required=False, min_value=0)

    class Meta:
        model = ProductVariant
        fields = [
            "id",
            "sku",
            "barcode",
            "size",
            "color",
            "price",
            "cost",
            "is_active",
            "stock",
            "initial_stock",
        ]

    def get_stock(self, obj):
        total = obj.inventory.aggregate(total=Sum("quantity"))["total"]
        return total or 0


class ProductSerializer(serializers.ModelSerializer):
    """
    Product with nested variants.

    Creating a product creates its variants in the same request. On update,
    variants carrying an ``id`` are updated and the others are added.
    """

    category_name = serializers.CharField(source="category.name", read_only=True, default=None)
    category = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(), required=False, allow_null=True
    )
    variants = ProductVariantSerializer(many=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "sku",
            "description",
            "image",
            "category",
            "category_name",
            "track_stock",
            "is_active",
            "variants",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_category(self, value):
        if value is not None and value.tenant_id != self.context["tenant"].id:
            raise serializers.ValidationError("التصنيف غير موجود")
        return value

    def validate_sku(self, value):
        queryset = Product.objects.filter(tenant=self.context["tenant"], sku=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("يوجد منتج بنفس الكود")
        return value

    def validate_variants(self, value):
        if self.instance is None and not value:
            raise serializers.ValidationError("يجب إضافة صنف واحد على الأقل")

        tenant = self.context["tenant"]
        skus = [variant["sku"] for variant in value]
        if len(skus) != len(set(skus)):
            raise serializers.ValidationError("لا يمكن تكرار كود الصنف")

        barcodes = [variant["barcode"] for variant in value if variant.get("barcode")]
        if len(barcodes) != len(set(barcodes)):
            raise serializers.ValidationError("لا يمكن تكرار الباركود")

        own_ids = [variant["id"] for variant in value if variant.get("id")]
        others = ProductVariant.objects.filter(tenant=tenant).exclude(id__in=own_ids)
        if others.filter(sku__in=skus).exists():
            raise serializers.ValidationError("يوجد صنف بنفس الكود")
        if barcodes and others.filter(barcode__in=barcodes).exists():
            raise serializers.ValidationError("يوجد صنف بنفس الباركود")
        return value

    def create(self, validated_data):
        variants_data = validated_data.pop("variants")
        tenant = self.context["tenant"]
        user = self.context["request"].user

        with transaction.atomic():
            product = Product.objects.create(tenant=tenant, **validated_data)
            for variant_data in variants_data:
                variant_data.pop("id", None)
                initial_stock = variant_data.pop("initial_stock", 0)
                variant = ProductVariant.objects.create(
                    tenant=tenant, product=product, **variant_data
                )
                if initial_stock and product.track_stock and user.branch_id:
                    add_stock(variant, user.branch, initial_stock, reason="Initial stock", user=user)

        return product

    def update(self, instance, validated_data):
        variants_data = validated_data.pop("variants", None)

        with transaction.atomic():
            instance = super().update(instance, validated_data)
            if variants_data is not None:
                existing = {variant.id: variant for variant in instance.variants.all()}
                for variant_data in variants_data:
                    variant_data.pop("initial_stock", None)
                    variant = existing.get(variant_data.pop("id", None))
                    if variant is None:
                        ProductVariant.objects.create(
                            tenant=instance.tenant, product=instance, **variant_data
                        )
                        continue
                    for field, value in variant_data.items():
                        setattr(variant, field, value)
                    variant.save()

        return instance


class InventorySerializer(serializers.ModelSerializer):
    """Stock row with the variant and branch it belongs to."""

    product_name = serializers.CharField(source="variant.product.name", read_only=True)
    sku = serializers.CharField(source="variant.sku", read_only=True)
    barcode = serializers.CharField(source="variant.barcode", read_only=True)
    size = serializers.CharField(source="variant.size", read_only=True)
    color = serializers.CharField(source="variant.color", read_only=True)
    branch_name = serializers.CharField(source="branch.name", read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Inventory
        fields = [
            "id",
            "variant",
            "product_name",
            "sku",
            "barcode",
            "size",
            "color",
            "branch",
            "branch_name",
            "quantity",
            "min_stock",
            "is_low_stock",
            "updated_at",
        ]
        read_only_fields = fields


class StockUpdateSerializer(serializers.Serializer):
    """
    Manual stock update for one variant at one branch.

    operation: "set" (absolute), "add" or "subtract"
    """

    variant_id = serializers.UUIDField()
    branch_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=0)
    operation = serializers.ChoiceField(choices=STOCK_OPERATIONS, default="set")
    min_stock = serializers.IntegerField(min_value=0, required=False)
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")

    def validate(self, data):
        tenant = self.context["tenant"]
        data["variant"] = _tenant_variant(tenant, data.pop("variant_id"))
        data["branch"] = _tenant_branch(tenant, data.pop("branch_id"))
        return data


class StockCountItemSerializer(serializers.Serializer):
    variant_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=0)


class StockAdjustmentSerializer(serializers.Serializer):
    """Stock count result for several variants at one branch."""

    branch_id = serializers.UUIDField()
    reason = serializers.CharField(max_length=500)
    items = StockCountItemSerializer(many=True, allow_empty=False)

    def validate(self, data):
        tenant = self.context["tenant"]
        data["branch"] = _tenant_branch(tenant, data.pop("branch_id"))
        variant_ids = [item["variant_id"] for item in data["items"]]
        if len(variant_ids) != len(set(variant_ids)):
            raise serializers.ValidationError({"items": "لا يمكن تكرار المنتج"})
        data["items"] = [
            (_tenant_variant(tenant, item["variant_id"]), item["quantity"]) for item in data["items"]
        ]
        return data


class SupplierSerializer(serializers.ModelSerializer):
    """Serializer for Supplier model."""

    class Meta:
        model = Supplier
        fields = [
            "id",
            "name",
            "contact_person",
            "email",
            "phone",
            "address",
            "is_active",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_name(self, value):
        queryset = Supplier.objects.filter(tenant=self.context["tenant"], name=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("يوجد مورد بنفس الاسم")
        return value


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="variant.product.name", read_only=True)
    sku = serializers.CharField(source="variant.sku", read_only=True)
    remaining_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = PurchaseOrderItem
        fields = [
            "id",
            "variant",
            "product_name",
            "sku",
            "quantity",
            "received_quantity",
            "remaining_quantity",
            "unit_cost",
        ]
        read_only_fields = fields


class PurchaseOrderSerializer(serializers.ModelSerializer):
    """Detailed serializer for purchase orders."""

    supplier_name = serializers.CharField(source="supplier.name", read_only=True)
    branch_name = serializers.CharField(source="branch.name", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    items = PurchaseOrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            "id",
            "po_number",
            "supplier",
            "supplier_name",
            "branch",
            "branch_name",
            "status",
            "status_display",
            "total",
            "notes",
            "items",
            "created_by",
            "created_at",
            "received_at",
            "cancelled_at",
        ]
        read_only_fields = fields


class PurchaseLineSerializer(serializers.Serializer):
    variant_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class PurchaseOrderCreateSerializer(serializers.Serializer):
    """Input for creating a purchase order."""

    supplier_id = serializers.UUIDField()
    branch_id = serializers.UUIDField()
    items = PurchaseLineSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")
    auto_receive = serializers.BooleanField(default=False)

    def validate_supplier_id(self, value):
        if not Supplier.objects.filter(id=value, tenant=self.context["tenant"]).exists():
            raise serializers.ValidationError("المورد غير موجود")
        return value

    def validate(self, data):
        tenant = self.context["tenant"]
        data["supplier"] = Supplier.objects.get(id=data.pop("supplier_id"), tenant=tenant)
        data["branch"] = _tenant_branch(tenant, data.pop("branch_id"))
        data["items"] = [
            {
                "variant": _tenant_variant(tenant, item["variant_id"]),
                "quantity": item["quantity"],
                "unit_cost": item["unit_cost"],
            }
            for item in data["items"]
        ]
        return data


class ReceiptLineSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=0)


class PurchaseReceiptSerializer(serializers.Serializer):
    items = ReceiptLineSerializer(many=True, allow_empty=False)


class StockTransferItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="variant.product.name", read_only=True)
    sku = serializers.CharField(source="variant.sku", read_only=True)

    class Meta:
        model = StockTransferItem
        fields = [
            "id",
            "variant",
            "product_name",
            "sku",
            "quantity",
            "received_quantity",
            "has_discrepancy",
            "discrepancy_notes",
        ]
        read_only_fields = fields


class StockTransferSerializer(serializers.ModelSerializer):
    """Detailed serializer for transfer detail view."""

    from_branch_name = serializers.CharField(source="from_branch.name", read_only=True)
    to_branch_name = serializers.CharField(source="to_branch.name", read_only=True)
    requested_by_name = serializers.CharField(source="requested_by.username", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    items = StockTransferItemSerializer(many=True, read_only=True)

    class Meta:
        model = StockTransfer
        fields = [
            "id",
            "transfer_number",
            "from_branch",
            "from_branch_name",
            "to_branch",
            "to_branch_name",
            "status",
            "status_display",
            "requested_by",
            "requested_by_name",
            "shipped_by",
            "received_by",
            "notes",
            "items",
            "created_at",
            "shipped_at",
            "received_at",
            "cancelled_at",
        ]
        read_only_fields = fields


class TransferLineSerializer(serializers.Serializer):
    variant_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class StockTransferCreateSerializer(serializers.Serializer):
    """
    Input for creating a transfer.

    ``direct`` (default true) ships and receives in the same request.
    """

    from_branch_id = serializers.UUIDField()
    to_branch_id = serializers.UUIDField()
    items = TransferLineSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")
    direct = serializers.BooleanField(default=True)

    def validate(self, data):
        tenant = self.context["tenant"]
        data["from_branch"] = _tenant_branch(tenant, data.pop("from_branch_id"))
        data["to_branch"] = _tenant_branch(tenant, data.pop("to_branch_id"))
        data["items"] = [
            {"variant": _tenant_variant(tenant, item["variant_id"]), "quantity": item["quantity"]}
            for item in data["items"]
        ]
        return data


class TransferReceiptSerializer(serializers.Serializer):
    """Optional actual quantities per transfer item id."""

    received_quantities = serializers.DictField(
        child=serializers.IntegerField(min_value=0), required=False, default=dict
    )


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
