"""
Views for inventory management.

- Categories and products (with variants) per tenant
- Stock levels per branch, manual updates and stock counts
- Suppliers and purchase orders with receipt
- Stock transfers between branches (requires the ``transfers`` feature)
"""

import logging

from django.db.models import F, Q
from django.shortcuts import get_object_or_404

from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from apps.core.audit import log_data_change
from apps.core.business_config import FEATURE_BARCODE_SCAN, FEATURE_TRANSFERS, FEATURE_VARIANTS
from apps.core.exceptions import Conflict, FeatureNotAvailable
from apps.core.feature_flags import is_feature_enabled_for_tenant
from apps.core.mixins import TenantScopedMixin, uuid_param
from apps.core.permissions import CanManageInventory, HasTenantAccess, require_feature

from . import services
from .models import Category, Inventory, Product, ProductVariant, PurchaseOrder, StockTransfer, Supplier
from .serializers import (
    CancelSerializer,
    CategorySerializer,
    InventorySerializer,
    ProductSerializer,
    PurchaseOrderCreateSerializer,
    PurchaseOrderSerializer,
    PurchaseReceiptSerializer,
    StockAdjustmentSerializer,
    StockTransferCreateSerializer,
    StockTransferSerializer,
    StockUpdateSerializer,
    SupplierSerializer,
    TransferReceiptSerializer,
)

logger = logging.getLogger(__name__)

TRUE_VALUES = ["true", "1", "yes"]


class ManageOnWriteMixin:
    """Reads are open to tenant staff; writes need inventory management rights."""

    def get_permissions(self):
        if self.request.method not in permissions.SAFE_METHODS:
            return [permissions.IsAuthenticated(), HasTenantAccess(), CanManageInventory()]
        return [permissions.IsAuthenticated(), HasTenantAccess()]


# Categories


class CategoryListCreateView(ManageOnWriteMixin, TenantScopedMixin, generics.ListCreateAPIView):
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    pagination_class = None

    def get_queryset(self):
        queryset = super().get_queryset()
        is_active = self.request.query_params.get("is_active")
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() in TRUE_VALUES)
        return queryset

    def perform_create(self, serializer):
        category = serializer.save(tenant=self.request.user.tenant)
        log_data_change(category, "CREATE", user=self.request.user)


class CategoryDetailView(ManageOnWriteMixin, TenantScopedMixin, generics.RetrieveUpdateDestroyAPIView):
    """Deleting a category deactivates it."""

    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    lookup_field = "id"

    def perform_update(self, serializer):
        category = serializer.save()
        log_data_change(category, "UPDATE", user=self.request.user)

    def perform_destroy(self, instance):
        instance.is_active = False
        instance.save(update_fields=["is_active", "updated_at"])
        log_data_change(instance, "DELETE", user=self.request.user)


# Products


def _check_variant_count(request, count):
    tenant = request.user.tenant
    if count > 1 and not is_feature_enabled_for_tenant(tenant, FEATURE_VARIANTS):
        logger.warning("Multiple variants rejected for tenant %s (%s)", tenant.id, tenant.business_type)
        raise FeatureNotAvailable(tenant.business_type, feature=FEATURE_VARIANTS)


class ProductListCreateView(ManageOnWriteMixin, TenantScopedMixin, generics.ListCreateAPIView):
    """
    API endpoint for listing products with search and filters.

    Supports:
    - Search by name, SKU, variant SKU or barcode
    - Filter by category and active status
    """

    queryset = Product.objects.select_related("category").prefetch_related("variants")
    serializer_class = ProductSerializer

    def get_queryset(self):
        queryset = super().get_queryset()

        search = self.request.query_params.get("search")
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search)
                | Q(sku__icontains=search)
                | Q(variants__sku__icontains=search)
                | Q(variants__barcode=search)
            ).distinct()

        category_id = uuid_param(self.request, "category")
        if category_id:
            queryset = queryset.filter(category_id=category_id)

        is_active = self.request.query_params.get("is_active")
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() in TRUE_VALUES)

        return queryset

    def perform_create(self, serializer):
        _check_variant_count(self.request, len(serializer.validated_data["variants"]))
        product = serializer.save()
        log_data_change(product, "CREATE", user=self.request.user)


class ProductDetailView(ManageOnWriteMixin, TenantScopedMixin, generics.RetrieveUpdateDestroyAPIView):
    """
    Retrieve, update or deactivate a product.

    Products referenced by sales are never removed; delete deactivates.
    """

    queryset = Product.objects.select_related("category").prefetch_related("variants")
    serializer_class = ProductSerializer
    lookup_field = "id"

    def perform_update(self, serializer):
        variants_data = serializer.validated_data.get("variants")
        if variants_data is not None:
            existing_ids = set(serializer.instance.variants.values_list("id", flat=True))
            new_count = sum(1 for variant in variants_data if variant.get("id") not in existing_ids)
            _check_variant_count(self.request, len(existing_ids) + new_count)
        product = serializer.save()
        log_data_change(product, "UPDATE", user=self.request.user)

    def perform_destroy(self, instance):
        if not instance.is_active:
            raise Conflict(detail="المنتج غير نشط بالفعل")
        instance.is_active = False
        instance.save(update_fields=["is_active", "updated_at"])
        log_data_change(instance, "DELETE", user=self.request.user)


@api_view(["GET"])
@permission_classes(
    [permissions.IsAuthenticated, HasTenantAccess, require_feature(FEATURE_BARCODE_SCAN)]
)
def lookup_by_barcode(request, barcode):
    """
    Look up a sellable variant by barcode for quick scanning.

    Returns the product with the scanned variant and its stock at the user's branch.
    """
    barcode = barcode.strip()
    variant = (
        ProductVariant.objects.select_related("product")
        .filter(tenant=request.user.tenant, barcode=barcode, is_active=True, product__is_active=True)
        .first()
    )
    if variant is None:
        return Response(
            {"detail": f"لا يوجد منتج بالباركود {barcode}", "code": "not_found"},
            status=status.HTTP_404_NOT_FOUND,
        )

    stock = None
    if request.user.branch_id:
        stock = (
            Inventory.objects.filter(variant=variant, branch_id=request.user.branch_id)
            .values_list("quantity", flat=True)
            .first()
        ) or 0

    return Response(
        {
            "product": ProductSerializer(variant.product, context={"tenant": request.user.tenant}).data,
            "variant_id": str(variant.id),
            "price": str(variant.price),
            "stock": stock,
        }
    )


# Stock levels


class InventoryListView(TenantScopedMixin, generics.ListAPIView):
    """
    Stock levels filtered by branch, variant or low stock.
    """

    queryset = Inventory.objects.select_related("variant__product", "branch")
    serializer_class = InventorySerializer
    permission_classes = [permissions.IsAuthenticated, HasTenantAccess]

    def get_queryset(self):
        queryset = super().get_queryset()

        branch_id = uuid_param(self.request, "branch")
        if branch_id:
            queryset = queryset.filter(branch_id=branch_id)

        variant_id = uuid_param(self.request, "variant")
        if variant_id:
            queryset = queryset.filter(variant_id=variant_id)

        low_stock = self.request.query_params.get("low_stock")
        if low_stock and low_stock.lower() in TRUE_VALUES:
            queryset = queryset.filter(quantity__lte=F("min_stock"))

        return queryset


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess])
def low_stock(request):
    """Stock rows at or below their alert threshold."""
    branch = None
    branch_id = uuid_param(request, "branch")
    if branch_id:
        branch = get_object_or_404(request.user.tenant.branches, id=branch_id)
    rows = services.low_stock_queryset(request.user.tenant, branch).select_related(
        "variant__product", "branch"
    )
    return Response({"count": rows.count(), "results": InventorySerializer(rows, many=True).data})


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess, CanManageInventory])
def update_stock(request):
    """
    Set, add to or subtract from one variant's stock at a branch.

    Request body:
    {
        "variant_id": "<uuid>",
        "branch_id": "<uuid>",
        "quantity": <number>,
        "operation": "set|add|subtract",
        "min_stock": <optional number>,
        "reason": "<optional reason>"
    }
    """
    serializer = StockUpdateSerializer(data=request.data, context={"tenant": request.user.tenant})
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    row = services.update_stock(
        data["variant"],
        data["branch"],
        data["quantity"],
        operation=data["operation"],
        min_stock=data.get("min_stock"),
        reason=data["reason"],
        user=request.user,
    )
    return Response(InventorySerializer(row).data, status=status.HTTP_200_OK)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess, CanManageInventory])
def adjust_stock(request):
    """
    Record a stock count for several variants at one branch.

    Request body:
    {
        "branch_id": "<uuid>",
        "reason": "Monthly count",
        "items": [{"variant_id": "<uuid>", "quantity": <counted>}]
    }
    """
    serializer = StockAdjustmentSerializer(data=request.data, context={"tenant": request.user.tenant})
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    rows = services.adjust_stock(data["branch"], data["items"], data["reason"], user=request.user)
    return Response({"results": InventorySerializer(rows, many=True).data})


# Suppliers


class SupplierListCreateView(ManageOnWriteMixin, TenantScopedMixin, generics.ListCreateAPIView):
    queryset = Supplier.objects.all()
    serializer_class = SupplierSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        search = self.request.query_params.get("search")
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(contact_person__icontains=search) | Q(phone=search)
            )
        return queryset

    def perform_create(self, serializer):
        supplier = serializer.save(tenant=self.request.user.tenant)
        log_data_change(supplier, "CREATE", user=self.request.user)


class SupplierDetailView(ManageOnWriteMixin, TenantScopedMixin, generics.RetrieveUpdateDestroyAPIView):
    queryset = Supplier.objects.all()
    serializer_class = SupplierSerializer
    lookup_field = "id"

    def perform_update(self, serializer):
        supplier = serializer.save()
        log_data_change(supplier, "UPDATE", user=self.request.user)

    def perform_destroy(self, instance):
        instance.is_active = False
        instance.save(update_fields=["is_active", "updated_at"])
        log_data_change(instance, "DELETE", user=self.request.user)


# Purchase orders


class PurchaseOrderListCreateView(TenantScopedMixin, generics.ListAPIView):
    """
    List purchase orders, or create one (optionally received on creation).
    """

    queryset = PurchaseOrder.objects.select_related("supplier", "branch").prefetch_related(
        "items__variant__product"
    )
    serializer_class = PurchaseOrderSerializer
    permission_classes = [permissions.IsAuthenticated, HasTenantAccess, CanManageInventory]

    def get_queryset(self):
        queryset = super().get_queryset()
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        supplier_id = uuid_param(self.request, "supplier")
        if supplier_id:
            queryset = queryset.filter(supplier_id=supplier_id)
        return queryset

    def post(self, request, *args, **kwargs):
        serializer = PurchaseOrderCreateSerializer(
            data=request.data, context={"tenant": request.user.tenant}
        )
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        purchase_order = services.create_purchase_order(
            request.user.tenant,
            data["supplier"],
            data["branch"],
            data["items"],
            request.user,
            notes=data["notes"],
            auto_receive=data["auto_receive"],
        )
        return Response(PurchaseOrderSerializer(purchase_order).data, status=status.HTTP_201_CREATED)


class PurchaseOrderDetailView(TenantScopedMixin, generics.RetrieveAPIView):
    queryset = PurchaseOrder.objects.select_related("supplier", "branch").prefetch_related(
        "items__variant__product"
    )
    serializer_class = PurchaseOrderSerializer
    permission_classes = [permissions.IsAuthenticated, HasTenantAccess, CanManageInventory]
    lookup_field = "id"


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess, CanManageInventory])
def receive_purchase_order(request, po_id):
    """
    Receive goods against a purchase order.

    Request body:
    {
        "items": [{"item_id": "<uuid>", "quantity": <number>}]
    }
    """
    purchase_order = get_object_or_404(PurchaseOrder, id=po_id, tenant=request.user.tenant)
    serializer = PurchaseReceiptSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    purchase_order = services.receive_purchase_order(
        purchase_order, serializer.validated_data["items"], request.user
    )
    purchase_order.refresh_from_db()
    return Response(PurchaseOrderSerializer(purchase_order).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess, CanManageInventory])
def cancel_purchase_order(request, po_id):
    purchase_order = get_object_or_404(PurchaseOrder, id=po_id, tenant=request.user.tenant)
    purchase_order = services.cancel_purchase_order(purchase_order, request.user)
    return Response(PurchaseOrderSerializer(purchase_order).data)


# Stock transfers

TRANSFER_PERMISSIONS = [
    permissions.IsAuthenticated,
    HasTenantAccess,
    CanManageInventory,
    require_feature(FEATURE_TRANSFERS),
]


class StockTransferListCreateView(TenantScopedMixin, generics.ListAPIView):
    """
    List transfers, or request a new one.

    With ``direct`` (the default) the transfer is shipped and received in the
    same transaction.
    """

    queryset = StockTransfer.objects.select_related(
        "from_branch", "to_branch", "requested_by"
    ).prefetch_related("items__variant__product")
    serializer_class = StockTransferSerializer
    permission_classes = TRANSFER_PERMISSIONS

    def get_queryset(self):
        queryset = super().get_queryset()

        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        branch_id = uuid_param(self.request, "branch")
        if branch_id:
            queryset = queryset.filter(Q(from_branch_id=branch_id) | Q(to_branch_id=branch_id))

        return queryset

    def post(self, request, *args, **kwargs):
        serializer = StockTransferCreateSerializer(
            data=request.data, context={"tenant": request.user.tenant}
        )
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        transfer = services.create_transfer(
            request.user.tenant,
            data["from_branch"],
            data["to_branch"],
            data["items"],
            request.user,
            notes=data["notes"],
            direct=data["direct"],
        )
        return Response(StockTransferSerializer(transfer).data, status=status.HTTP_201_CREATED)


class StockTransferDetailView(TenantScopedMixin, generics.RetrieveAPIView):
    queryset = StockTransfer.objects.select_related(
        "from_branch", "to_branch", "requested_by"
    ).prefetch_related("items__variant__product")
    serializer_class = StockTransferSerializer
    permission_classes = TRANSFER_PERMISSIONS
    lookup_field = "id"


@api_view(["POST"])
@permission_classes(TRANSFER_PERMISSIONS)
def ship_transfer(request, transfer_id):
    """Ship a pending transfer. Stock leaves the source branch."""
    transfer = get_object_or_404(StockTransfer, id=transfer_id, tenant=request.user.tenant)
    transfer = services.ship_transfer(transfer, request.user)
    return Response(StockTransferSerializer(transfer).data)


@api_view(["POST"])
@permission_classes(TRANSFER_PERMISSIONS)
def receive_transfer(request, transfer_id):
    """
    Receive a shipped transfer at the destination.

    Request body (optional):
    {
        "received_quantities": {"<item_id>": <actual_quantity>}
    }
    """
    transfer = get_object_or_404(StockTransfer, id=transfer_id, tenant=request.user.tenant)
    serializer = TransferReceiptSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    transfer = services.receive_transfer(
        transfer, request.user, serializer.validated_data["received_quantities"]
    )
    return Response(StockTransferSerializer(transfer).data)


@api_view(["POST"])
@permission_classes(TRANSFER_PERMISSIONS)
def cancel_transfer(request, transfer_id):
    """
    Cancel a pending or shipped transfer.

    Request body:
    {
        "reason": "Reason for cancellation"
    }
    """
    transfer = get_object_or_404(StockTransfer, id=transfer_id, tenant=request.user.tenant)
    serializer = CancelSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    transfer = services.cancel_transfer(transfer, request.user, serializer.validated_data["reason"])
    return Response(StockTransferSerializer(transfer).data)
