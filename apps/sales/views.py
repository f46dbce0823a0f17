"""
Views for POS sales, refunds, discounts, shifts and installments.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from apps.core.audit import log_data_change
from apps.core.business_config import FEATURE_INSTALLMENTS
from apps.core.exceptions import BranchRequired, InvalidCoupon, NotFound
from apps.core.mixins import TenantScopedMixin, date_param, uuid_param
from apps.core.permissions import CanManageInventory, HasTenantAccess, require_feature

from . import services
from .models import Discount, Installment, Sale, Shift
from .serializers import (
    CashTransactionSerializer,
    DiscountSerializer,
    InstallmentPaymentCreateSerializer,
    InstallmentPaymentSerializer,
    InstallmentSerializer,
    RefundCreateSerializer,
    RefundSerializer,
    SaleCreateSerializer,
    SaleDetailSerializer,
    SaleListSerializer,
    ShiftCloseSerializer,
    ShiftOpenSerializer,
    ShiftSerializer,
)

logger = logging.getLogger(__name__)

RETURN_REASONS = [
    "مقاس غير مناسب",
    "لون غير مناسب",
    "عيب في المنتج",
    "المنتج لا يطابق الوصف",
    "تغيير رأي العميل",
    "أخرى",
]


def _user_branch(request):
    if not request.user.branch_id:
        raise BranchRequired()
    return request.user.branch


# Sales


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess])
def pos_create_sale(request):
    """
    Create a sale at the user's branch.

    Request body:
    {
        "items": [
            {
                "variant_id": "uuid",
                "quantity": 1,
                "unit_price": "100.00" (optional, uses the variant price),
                "discount": "0.00" (optional, line discount)
            }
        ],
        "discount": "0.00", "discount_type": "amount|percentage",
        "coupon_code": "" (optional, replaces the manual discount),
        "tax": "0.00",
        "paid": "100.00" (optional, defaults to the total),
        "payment_method": "CASH|CARD|INSTALLMENT|OTHER",
        "installment": {"number_of_payments": 6, "down_payment": "100.00",
                        "customer_name": "...", "customer_phone": "..."}
    }
    """
    branch = _user_branch(request)
    serializer = SaleCreateSerializer(data=request.data, context={"tenant": request.user.tenant})
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    sale = services.record_sale(
        request.user.tenant,
        branch,
        request.user,
        data["items"],
        discount=data["discount"],
        discount_type=data["discount_type"],
        coupon_code=data.get("coupon_code") or None,
        tax=data["tax"],
        paid=data.get("paid"),
        payment_method=data["payment_method"],
        installment=data.get("installment"),
        customer_name=data["customer_name"],
        customer_phone=data["customer_phone"],
        notes=data["notes"],
    )
    return Response(SaleDetailSerializer(sale).data, status=status.HTTP_201_CREATED)


class SaleListView(TenantScopedMixin, generics.ListAPIView):
    """
    Sales filtered by branch, status, payment method, date range or invoice number.
    """

    queryset = Sale.objects.select_related("branch", "cashier")
    serializer_class = SaleListSerializer
    permission_classes = [permissions.IsAuthenticated, HasTenantAccess]

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params

        branch_id = uuid_param(self.request, "branch")
        if branch_id:
            queryset = queryset.filter(branch_id=branch_id)
        if params.get("status"):
            queryset = queryset.filter(status=params["status"])
        if params.get("payment_method"):
            queryset = queryset.filter(payment_method=params["payment_method"])
        date_from = date_param(self.request, "date_from")
        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)
        date_to = date_param(self.request, "date_to")
        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)

        search = params.get("search")
        if search:
            queryset = queryset.filter(
                Q(invoice_number__icontains=search)
                | Q(customer_name__icontains=search)
                | Q(customer_phone=search)
            )

        return queryset


class SaleDetailView(TenantScopedMixin, generics.RetrieveAPIView):
    queryset = Sale.objects.select_related("branch", "cashier", "coupon").prefetch_related(
        "items__variant"
    )
    serializer_class = SaleDetailSerializer
    permission_classes = [permissions.IsAuthenticated, HasTenantAccess]
    lookup_field = "id"


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess])
def refund_sale(request, sale_id):
    """
    Return items of a sale.

    Request body:
    {
        "items": [{"sale_item_id": "uuid", "quantity": 1}],
        "reason": "عيب في المنتج"
    }
    """
    sale = get_object_or_404(Sale, id=sale_id, tenant=request.user.tenant)
    serializer = RefundCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    refund = services.refund_sale(
        sale,
        serializer.validated_data["items"],
        request.user,
        reason=serializer.validated_data["reason"],
    )
    sale.refresh_from_db()
    return Response(
        {"refund": RefundSerializer(refund).data, "sale": SaleDetailSerializer(sale).data},
        status=status.HTTP_201_CREATED,
    )


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess])
def return_reasons(request):
    return Response({"results": RETURN_REASONS})


# Discounts


class DiscountListCreateView(TenantScopedMixin, generics.ListCreateAPIView):
    queryset = Discount.objects.all()
    serializer_class = DiscountSerializer

    def get_permissions(self):
        if self.request.method == "POST":
            return [permissions.IsAuthenticated(), HasTenantAccess(), CanManageInventory()]
        return [permissions.IsAuthenticated(), HasTenantAccess()]

    def get_queryset(self):
        queryset = super().get_queryset()
        is_active = self.request.query_params.get("is_active")
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() in ["true", "1", "yes"])
        return queryset

    def perform_create(self, serializer):
        discount = serializer.save(tenant=self.request.user.tenant)
        log_data_change(discount, "CREATE", user=self.request.user)


class DiscountDetailView(TenantScopedMixin, generics.RetrieveUpdateDestroyAPIView):
    queryset = Discount.objects.all()
    serializer_class = DiscountSerializer
    lookup_field = "id"

    def get_permissions(self):
        if self.request.method not in permissions.SAFE_METHODS:
            return [permissions.IsAuthenticated(), HasTenantAccess(), CanManageInventory()]
        return [permissions.IsAuthenticated(), HasTenantAccess()]

    def perform_update(self, serializer):
        discount = serializer.save()
        log_data_change(discount, "UPDATE", user=self.request.user)

    def perform_destroy(self, instance):
        log_data_change(instance, "DELETE", user=self.request.user)
        if instance.sales.exists():
            instance.is_active = False
            instance.save(update_fields=["is_active", "updated_at"])
        else:
            instance.delete()


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess])
def validate_coupon(request, code):
    """
    Check a coupon code without redeeming it.

    Query parameters:
    - subtotal: Optional subtotal to check the minimum purchase against
    """
    coupon = Discount.objects.filter(tenant=request.user.tenant, code=code).first()
    if coupon is None:
        raise InvalidCoupon()

    subtotal = request.query_params.get("subtotal")
    if subtotal is not None:
        try:
            subtotal = Decimal(subtotal)
        except InvalidOperation:
            return Response(
                {"detail": "قيمة المشتريات غير صالحة", "code": "invalid_subtotal"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        coupon.validate_for(subtotal)
        amount = coupon.calculate(subtotal)
    else:
        coupon.validate_for(coupon.min_purchase or 0)
        amount = None

    data = DiscountSerializer(coupon, context={"tenant": request.user.tenant}).data
    data["discount_amount"] = str(amount) if amount is not None else None
    return Response(data)


# Shifts


class ShiftListView(TenantScopedMixin, generics.ListAPIView):
    queryset = Shift.objects.select_related("branch", "user").prefetch_related("transactions")
    serializer_class = ShiftSerializer
    permission_classes = [permissions.IsAuthenticated, HasTenantAccess]

    def get_queryset(self):
        queryset = super().get_queryset()
        branch_id = uuid_param(self.request, "branch")
        if branch_id:
            queryset = queryset.filter(branch_id=branch_id)
        is_open = self.request.query_params.get("is_open")
        if is_open == "true":
            queryset = queryset.filter(closed_at__isnull=True)
        elif is_open == "false":
            queryset = queryset.filter(closed_at__isnull=False)
        return queryset


class ShiftDetailView(TenantScopedMixin, generics.RetrieveAPIView):
    queryset = Shift.objects.select_related("branch", "user").prefetch_related("transactions")
    serializer_class = ShiftSerializer
    permission_classes = [permissions.IsAuthenticated, HasTenantAccess]
    lookup_field = "id"


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess])
def current_shift(request):
    """The requesting user's open shift, or null."""
    shift = services.current_shift(request.user)
    return Response({"shift": ShiftSerializer(shift).data if shift else None})


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess])
def open_shift(request):
    """
    Open a shift on a branch (defaults to the user's branch).

    Request body:
    {
        "branch_id": "uuid" (optional),
        "opening_balance": "500.00"
    }
    """
    serializer = ShiftOpenSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    if data.get("branch_id"):
        branch = request.user.tenant.branches.filter(id=data["branch_id"], is_active=True).first()
        if branch is None:
            raise NotFound(detail="الفرع غير موجود")
    else:
        branch = _user_branch(request)

    shift = services.open_shift(
        request.user.tenant, branch, request.user, data["opening_balance"], notes=data["notes"]
    )
    return Response(ShiftSerializer(shift).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess])
def close_shift(request, shift_id):
    shift = get_object_or_404(Shift, id=shift_id, tenant=request.user.tenant)
    serializer = ShiftCloseSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    shift = services.close_shift(
        shift,
        serializer.validated_data["actual_cash"],
        request.user,
        notes=serializer.validated_data["notes"],
    )
    return Response(ShiftSerializer(shift).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated, HasTenantAccess])
def add_cash_transaction(request, shift_id):
    """
    Deposit into or withdraw from an open shift's drawer.

    Request body:
    {
        "transaction_type": "DEPOSIT|WITHDRAWAL",
        "amount": "100.00",
        "reason": "..."
    }
    """
    shift = get_object_or_404(Shift, id=shift_id, tenant=request.user.tenant)
    serializer = CashTransactionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    cash_transaction = services.add_cash_transaction(
        shift,
        serializer.validated_data["transaction_type"],
        serializer.validated_data["amount"],
        request.user,
        reason=serializer.validated_data.get("reason", ""),
    )
    return Response(CashTransactionSerializer(cash_transaction).data, status=status.HTTP_201_CREATED)


# Installments

INSTALLMENT_PERMISSIONS = [
    permissions.IsAuthenticated,
    HasTenantAccess,
    require_feature(FEATURE_INSTALLMENTS),
]


class InstallmentListView(TenantScopedMixin, generics.ListAPIView):
    queryset = Installment.objects.select_related("sale", "branch").prefetch_related("payments")
    serializer_class = InstallmentSerializer
    permission_classes = INSTALLMENT_PERMISSIONS

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params
        if params.get("status"):
            queryset = queryset.filter(status=params["status"])
        branch_id = uuid_param(self.request, "branch")
        if branch_id:
            queryset = queryset.filter(branch_id=branch_id)
        return queryset


class InstallmentDetailView(TenantScopedMixin, generics.RetrieveAPIView):
    queryset = Installment.objects.select_related("sale", "branch").prefetch_related("payments")
    serializer_class = InstallmentSerializer
    permission_classes = INSTALLMENT_PERMISSIONS
    lookup_field = "id"


@api_view(["GET"])
@permission_classes(INSTALLMENT_PERMISSIONS)
def overdue_installments(request):
    """Active plans whose due date has passed, most overdue first."""
    plans = services.overdue_installments(request.user.tenant, today=timezone.localdate())
    plans = plans.select_related("sale", "branch").prefetch_related("payments")
    return Response(
        {"count": plans.count(), "results": InstallmentSerializer(plans, many=True).data}
    )


@api_view(["POST"])
@permission_classes(INSTALLMENT_PERMISSIONS)
def add_installment_payment(request, installment_id):
    """
    Record a payment on a plan.

    Request body:
    {
        "amount": "250.00",
        "payment_method": "CASH|CARD|OTHER",
        "notes": ""
    }
    """
    installment = get_object_or_404(Installment, id=installment_id, tenant=request.user.tenant)
    serializer = InstallmentPaymentCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    payment = services.add_installment_payment(
        installment,
        serializer.validated_data["amount"],
        request.user,
        payment_method=serializer.validated_data["payment_method"],
        notes=serializer.validated_data["notes"],
    )
    installment.refresh_from_db()
    return Response(
        {
            "payment": InstallmentPaymentSerializer(payment).data,
            "installment": InstallmentSerializer(installment).data,
        },
        status=status.HTTP_201_CREATED,
    )
