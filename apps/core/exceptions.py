"""
Domain errors for the POS platform and the API exception handler.

Every error body carries a ``detail`` message in Arabic (the product's UI
language) and a stable ``code`` clients can switch on.
"""

import logging

from django_fsm import ConcurrentTransition, TransitionNotAllowed
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class DomainError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "طلب غير صالح"
    default_code = "invalid_request"


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "العنصر غير موجود"
    default_code = "not_found"


class Conflict(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "تعارض في حالة البيانات"
    default_code = "conflict"


class FeatureNotAvailable(APIException):
    """
    Raised when the tenant's business type does not offer a feature.

    The body names the missing feature(s) and the tenant's business type.
    """

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "هذه الميزة غير متاحة لنوع نشاطك"
    default_code = "feature_not_available"

    def __init__(self, business_type, feature=None, required_features=None):
        body = {
            "detail": self.default_detail,
            "code": self.default_code,
            "business_type": business_type,
        }
        if required_features is not None:
            body["required_features"] = list(required_features)
        else:
            body["feature"] = feature
        self.body = body
        super().__init__(detail=self.default_detail, code=self.default_code)


class BranchRequired(DomainError):
    default_detail = "يجب تحديد الفرع للمستخدم"
    default_code = "branch_required"


class InsufficientStock(DomainError):
    default_detail = "الكمية غير متوفرة في المخزون"
    default_code = "insufficient_stock"

    def __init__(self, variant=None, branch=None, requested=None, available=None):
        detail = self.default_detail
        if variant is not None:
            detail = f"الكمية غير متوفرة للمنتج {variant}"
        super().__init__(detail=detail, code=self.default_code)
        self.variant = variant
        self.branch = branch
        self.requested = requested
        self.available = available


class InvalidStatusTransition(DomainError):
    default_detail = "حالة غير صالحة"
    default_code = "invalid_status_transition"


class OrderNotEditable(DomainError):
    default_detail = "الطلب غير موجود أو لا يمكن تعديله"
    default_code = "order_not_editable"


class OrderAlreadyPaid(DomainError):
    default_detail = "الطلب غير موجود أو تم دفعه مسبقاً"
    default_code = "order_already_paid"


class TableRequired(DomainError):
    default_detail = "يجب اختيار طاولة لطلبات الصالة"
    default_code = "table_required"


class TableHasActiveOrders(DomainError):
    default_detail = "لا يمكن حذف طاولة بها طلبات نشطة"
    default_code = "table_has_active_orders"


class InsufficientPayment(DomainError):
    default_detail = "المبلغ المدفوع أقل من الإجمالي"
    default_code = "insufficient_payment"


class InvalidCoupon(DomainError):
    default_detail = "الكوبون غير صالح"
    default_code = "invalid_coupon"


class CouponInactive(InvalidCoupon):
    default_detail = "الكوبون غير نشط"
    default_code = "coupon_inactive"


class CouponNotStarted(InvalidCoupon):
    default_detail = "الكوبون لم يبدأ بعد"
    default_code = "coupon_not_started"


class CouponExpired(InvalidCoupon):
    default_detail = "الكوبون منتهي الصلاحية"
    default_code = "coupon_expired"


class CouponUsageExceeded(InvalidCoupon):
    default_detail = "تم استخدام الكوبون الحد الأقصى من المرات"
    default_code = "coupon_usage_exceeded"


class CouponMinimumNotMet(InvalidCoupon):
    default_detail = "قيمة المشتريات أقل من الحد الأدنى للكوبون"
    default_code = "coupon_minimum_not_met"


class ShiftAlreadyOpen(Conflict):
    default_detail = "يوجد وردية مفتوحة بالفعل لهذا الفرع"
    default_code = "shift_already_open"


class ShiftClosed(DomainError):
    default_detail = "الوردية مغلقة بالفعل"
    default_code = "shift_closed"


class InstallmentPaymentInvalid(DomainError):
    default_detail = "قيمة الدفعة غير صالحة"
    default_code = "installment_payment_invalid"


class RefundQuantityExceeded(DomainError):
    default_detail = "الكمية المرتجعة أكبر من الكمية المباعة"
    default_code = "refund_quantity_exceeded"


class ReceiptQuantityExceeded(DomainError):
    default_detail = "الكمية المستلمة أكبر من الكمية المطلوبة"
    default_code = "receipt_quantity_exceeded"


class SameBranchTransfer(DomainError):
    default_detail = "لا يمكن التحويل لنفس الفرع"
    default_code = "same_branch_transfer"


class InvalidQuantity(DomainError):
    default_detail = "الكمية غير صالحة"
    default_code = "invalid_quantity"


class InvalidFilter(DomainError):
    default_detail = "قيمة غير صالحة في معايير البحث"
    default_code = "invalid_filter"


def api_exception_handler(exc, context):
    """
    Project-wide DRF exception handler.

    Adds a ``code`` to every error body and maps django-fsm errors to API
    responses. Anything else falls through to Django's 500 handling.
    """
    if isinstance(exc, ConcurrentTransition):
        logger.warning("Concurrent transition rejected: %s", exc)
        exc = Conflict(detail="تم تعديل السجل من مستخدم آخر، أعد المحاولة", code="concurrent_update")
    elif isinstance(exc, TransitionNotAllowed):
        logger.warning("Transition not allowed: %s", exc)
        exc = InvalidStatusTransition()

    if isinstance(exc, FeatureNotAvailable):
        return Response(exc.body, status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        logger.exception("Unhandled error in %s", context.get("view"), exc_info=exc)
        return None

    # Field error dicts from serializer validation are returned untouched
    if isinstance(response.data, dict) and "detail" in response.data:
        code = getattr(exc.detail, "code", None) if isinstance(exc, APIException) else None
        response.data["code"] = code or getattr(exc, "default_code", "error")

    return response
