"""
Views for restaurant and cafe tenants.

- Tables (requires the ``tables`` feature)
- Orders and checkout (requires ``orders``)
- Kitchen display of active orders (requires ``kitchen``)
"""

import logging

from django.shortcuts import get_object_or_404

from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from apps.core.audit import log_data_change
from apps.core.business_config import FEATURE_KITCHEN, FEATURE_ORDERS, FEATURE_TABLES
from apps.core.exceptions import DomainError
from apps.core.mixins import TenantScopedMixin, uuid_param
from apps.core.permissions import HasTenantAccess, IsTenantManager, IsTenantOwner, require_feature
from apps.sales.serializers import SaleDetailSerializer

from . import services
from .models import Order, RestaurantTable
from .serializers import (
    CheckoutSerializer,
    OrderCreateSerializer,
    OrderItemsAddSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    RestaurantTableSerializer,
)

logger = logging.getLogger(__name__)

TABLE_PERMISSIONS = [permissions.IsAuthenticated, HasTenantAccess, require_feature(FEATURE_TABLES)]
ORDER_PERMISSIONS = [permissions.IsAuthenticated, HasTenantAccess, require_feature(FEATURE_ORDERS)]


def _get_order(request, order_id):
    return get_object_or_404(Order, id=order_id, tenant=request.user.tenant)


# Tables


class RestaurantTableListCreateView(TenantScopedMixin, generics.ListCreateAPIView):
    """Tables of the tenant, optionally filtered by branch or status."""

    queryset = RestaurantTable.objects.select_related("branch")
    serializer_class = RestaurantTableSerializer
    permission_classes = TABLE_PERMISSIONS
    pagination_class = None

    def get_permissions(self):
        permissions_list = super().get_permissions()
        if self.request.method == "POST":
            permissions_list.append(IsTenantManager())
        return permissions_list

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params
        branch_id = uuid_param(self.request, "branch")
        if branch_id:
            queryset = queryset.filter(branch_id=branch_id)
        if params.get("status"):
            queryset = queryset.filter(status=params["status"])
        return queryset

    def perform_create(self, serializer):
        table = serializer.save(tenant=self.request.user.tenant)
        log_data_change(table, "CREATE", user=self.request.user)


class RestaurantTableDetailView(TenantScopedMixin, generics.RetrieveUpdateDestroyAPIView):
    """
    Retrieve, update or delete a table.

    Any staff member may change only the status; other edits need a
    manager and deletion needs the owner.
    """

    queryset = RestaurantTable.objects.select_related("branch")
    serializer_class = RestaurantTableSerializer
    permission_classes = TABLE_PERMISSIONS
    lookup_field = "id"

    def get_permissions(self):
        permissions_list = super().get_permissions()
        if self.request.method == "DELETE":
            permissions_list.append(IsTenantOwner())
        elif self.request.method in ("PUT", "PATCH") and set(self.request.data) - {"status"}:
            permissions_list.append(IsTenantManager())
        return permissions_list

    def perform_update(self, serializer):
        old_status = serializer.instance.status
        table = serializer.save()
        log_data_change(
            table,
            "UPDATE",
            user=self.request.user,
            old_values={"status": old_status},
            new_values={"status": table.status},
        )

    def perform_destroy(self, instance):
        services.delete_table(instance, self.request.user)


# Orders


class OrderListView(TenantScopedMixin, generics.ListAPIView):
    """Orders filtered by branch, status, table or order type."""

    queryset = Order.objects.select_related("table", "branch", "user", "sale").prefetch_related(
        "items__variant__product"
    )
    serializer_class = OrderSerializer
    permission_classes = ORDER_PERMISSIONS

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params
        branch_id = uuid_param(self.request, "branch")
        if branch_id:
            queryset = queryset.filter(branch_id=branch_id)
        if params.get("status"):
            queryset = queryset.filter(status=params["status"])
        table_id = uuid_param(self.request, "table")
        if table_id:
            queryset = queryset.filter(table_id=table_id)
        if params.get("order_type"):
            queryset = queryset.filter(order_type=params["order_type"])
        return queryset

    def post(self, request, *args, **kwargs):
        """
        Open an order at the user's branch.

        Request body:
        {
            "table_id": "uuid" (required for dine-in when the business requires tables),
            "order_type": "dine_in|takeaway|delivery",
            "items": [{"variant_id": "uuid", "quantity": 2, "notes": "no onions"}],
            "customer_name": "", "notes": ""
        }
        """
        serializer = OrderCreateSerializer(data=request.data, context={"tenant": request.user.tenant})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = services.create_order(
            request.user.tenant,
            request.user,
            data["items"],
            order_type=data["order_type"],
            table=data["table"],
            customer_name=data["customer_name"],
            notes=data["notes"],
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(TenantScopedMixin, generics.RetrieveAPIView):
    queryset = Order.objects.select_related("table", "branch", "user", "sale").prefetch_related(
        "items__variant__product"
    )
    serializer_class = OrderSerializer
    permission_classes = ORDER_PERMISSIONS
    lookup_field = "id"


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess, require_feature(FEATURE_KITCHEN)])
def kitchen_orders(request):
    """Active orders for the kitchen display, oldest first."""
    queryset = (
        Order.objects.filter(tenant=request.user.tenant, status__in=Order.KITCHEN_STATUSES)
        .select_related("table", "branch", "user")
        .prefetch_related("items__variant__product")
        .order_by("created_at")
    )
    branch_id = uuid_param(request, "branch")
    if branch_id:
        queryset = queryset.filter(branch_id=branch_id)
    return Response(OrderSerializer(queryset, many=True).data)


@api_view(["POST"])
@permission_classes(ORDER_PERMISSIONS)
def add_order_items(request, order_id):
    order = _get_order(request, order_id)
    serializer = OrderItemsAddSerializer(data=request.data, context={"tenant": request.user.tenant})
    serializer.is_valid(raise_exception=True)

    order = services.add_items(order, serializer.validated_data["items"], request.user)
    return Response(OrderSerializer(order).data)


@api_view(["PATCH"])
@permission_classes(ORDER_PERMISSIONS)
def update_order_status(request, order_id):
    """
    Move an order forward: pending → preparing → ready → served.

    Request body: {"status": "preparing"}
    """
    order = _get_order(request, order_id)
    serializer = OrderStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = services.update_status(order, serializer.validated_data["status"], request.user)
    return Response(OrderSerializer(order).data)


@api_view(["POST"])
@permission_classes(ORDER_PERMISSIONS)
def checkout_order(request, order_id):
    """
    Pay an order and turn it into a sale.

    Request body:
    {
        "discount": "0.00", "discount_type": "amount|percentage",
        "coupon_code": "" (optional),
        "tax": "0.00", "paid": "100.00" (optional),
        "payment_method": "CASH|CARD|OTHER"
    }
    """
    order = _get_order(request, order_id)
    serializer = CheckoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    order, sale = services.checkout(
        order,
        request.user,
        discount=data["discount"],
        discount_type=data["discount_type"],
        coupon_code=data.get("coupon_code") or None,
        tax=data["tax"],
        paid=data.get("paid"),
        payment_method=data["payment_method"],
        customer_phone=data["customer_phone"],
    )
    return Response(
        {"order": OrderSerializer(order).data, "sale": SaleDetailSerializer(sale).data},
        status=status.HTTP_201_CREATED,
    )


@api_view(["POST"])
@permission_classes(ORDER_PERMISSIONS)
def cancel_order(request, order_id):
    order = _get_order(request, order_id)
    reason = request.data.get("reason", "")
    if not isinstance(reason, str):
        raise DomainError(detail="سبب الإلغاء غير صالح", code="invalid_reason")

    order = services.cancel_order(order, request.user, reason=reason)
    return Response(OrderSerializer(order).data)
