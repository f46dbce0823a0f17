"""
Sale, refund, shift and installment services.

Each public function runs in one database transaction. A sale locks the
coupon it redeems and the stock rows it deducts; a failure anywhere rolls
back the sale, its items, the coupon usage and every stock movement.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from dateutil.relativedelta import relativedelta
from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from apps.core.audit import log_refund, log_status_change
from apps.core.business_config import FEATURE_INSTALLMENTS
from apps.core.exceptions import (
    DomainError,
    FeatureNotAvailable,
    InstallmentPaymentInvalid,
    InsufficientPayment,
    InvalidCoupon,
    RefundQuantityExceeded,
    ShiftAlreadyOpen,
    ShiftClosed,
)
from apps.core.feature_flags import is_feature_enabled_for_tenant
from apps.core.numbering import next_document_number
from apps.inventory.services import add_stock, deduct_stock

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

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def _money(value):
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# Discounts


def redeem_coupon(tenant, code, subtotal):
    """
    Lock a coupon, validate it for the subtotal and count the redemption.

    Returns:
        tuple: (Discount, discount amount)

    Raises:
        InvalidCoupon: Unknown code, or a subclass naming the failed rule
    """
    coupon = Discount.objects.select_for_update().filter(tenant=tenant, code=code).first()
    if coupon is None:
        raise InvalidCoupon()

    coupon.validate_for(subtotal)
    coupon.used_count += 1
    coupon.save(update_fields=["used_count", "updated_at"])

    logger.info("Coupon %s redeemed for tenant %s (%s uses)", code, tenant.id, coupon.used_count)
    return coupon, coupon.calculate(subtotal)


def resolve_discount(tenant, subtotal, discount=ZERO, discount_type=Sale.DISCOUNT_AMOUNT, coupon_code=None):
    """
    Sale-level discount amount.

    A coupon code wins over a manual discount. Percentage discounts are a
    share of the subtotal and never exceed it.

    Returns:
        tuple: (amount, discount_type, Discount | None)
    """
    if coupon_code:
        coupon, amount = redeem_coupon(tenant, coupon_code, subtotal)
        return amount, Sale.DISCOUNT_COUPON, coupon

    discount = Decimal(discount or 0)
    if discount < 0:
        raise DomainError(detail="قيمة الخصم لا يمكن أن تكون سالبة", code="invalid_discount")

    if discount_type == Sale.DISCOUNT_PERCENTAGE:
        if discount > 100:
            raise DomainError(detail="نسبة الخصم لا يمكن أن تتجاوز 100%", code="invalid_discount")
        amount = _money(subtotal * discount / Decimal("100"))
        return min(amount, subtotal), Sale.DISCOUNT_PERCENTAGE, None

    return _money(discount), Sale.DISCOUNT_AMOUNT, None


# Sales


def open_shift_for(branch):
    """The open shift of the branch register, if any."""
    return Shift.objects.filter(branch=branch, closed_at__isnull=True).first()


@transaction.atomic
def record_sale(
    tenant,
    branch,
    user,
    items,
    discount=ZERO,
    discount_type=Sale.DISCOUNT_AMOUNT,
    coupon_code=None,
    tax=ZERO,
    paid=None,
    payment_method=Sale.CASH,
    installment=None,
    customer_name="",
    customer_phone="",
    notes="",
    stock_reason=None,
):
    """
    Record a sale and deduct its items from the branch's stock.

    Args:
        tenant: Tenant making the sale
        branch: Branch whose stock is deducted
        user: Cashier
        items: List of dicts {variant, quantity, unit_price (optional), discount (optional)}
        discount: Manual sale-level discount (amount or percentage)
        discount_type: "amount" or "percentage"
        coupon_code: Coupon to redeem instead of a manual discount
        tax: Absolute tax amount
        paid: Amount tendered; defaults to the total (or the down payment
            for installment sales)
        payment_method: CASH, CARD, INSTALLMENT or OTHER
        installment: For INSTALLMENT sales, dict {number_of_payments,
            down_payment, customer_name, customer_phone, notes}
        stock_reason: Audit reason for the stock movements

    Returns:
        Sale

    Raises:
        InsufficientStock: When any line is not available at the branch
        InsufficientPayment: When a non-installment sale is underpaid
        FeatureNotAvailable: For installment sales without the feature
    """
    if not items:
        raise DomainError(detail="يجب إضافة منتج واحد على الأقل", code="empty_sale")

    if payment_method == Sale.INSTALLMENT:
        if not is_feature_enabled_for_tenant(tenant, FEATURE_INSTALLMENTS):
            logger.warning("Installment sale rejected for tenant %s", tenant.id)
            raise FeatureNotAvailable(tenant.business_type, feature=FEATURE_INSTALLMENTS)
        if not installment:
            raise DomainError(detail="بيانات التقسيط مطلوبة", code="installment_required")

    lines = []
    subtotal = ZERO
    for item in items:
        variant = item["variant"]
        quantity = item["quantity"]
        unit_price = item.get("unit_price")
        unit_price = variant.price if unit_price is None else Decimal(unit_price)
        line_discount = Decimal(item.get("discount") or 0)
        line_total = _money(unit_price * quantity - line_discount)
        if line_total < 0:
            raise DomainError(detail="خصم الصنف أكبر من قيمته", code="invalid_discount")
        subtotal += line_total
        lines.append(
            SaleItem(
                variant=variant,
                product_name=str(variant),
                quantity=quantity,
                unit_price=unit_price,
                discount=line_discount,
                total=line_total,
            )
        )

    tax = _money(tax or 0)
    if tax < 0:
        raise DomainError(detail="قيمة الضريبة لا يمكن أن تكون سالبة", code="invalid_tax")

    discount_amount, discount_type, coupon = resolve_discount(
        tenant, subtotal, discount, discount_type, coupon_code
    )
    total = max(subtotal - discount_amount + tax, ZERO)

    if payment_method == Sale.INSTALLMENT:
        down_payment = installment.get("down_payment")
        if down_payment is None:
            down_payment = paid if paid is not None else ZERO
        down_payment = _money(down_payment)
        if down_payment < 0 or down_payment > total:
            raise InstallmentPaymentInvalid(detail="الدفعة المقدمة غير صالحة")
        paid = down_payment
        change = ZERO
    else:
        paid = total if paid is None else _money(paid)
        if paid < total:
            raise InsufficientPayment()
        change = max(paid - total, ZERO)

    sale = Sale(
        tenant=tenant,
        invoice_number=next_document_number(Sale, tenant, "INV", "invoice_number"),
        branch=branch,
        cashier=user,
        shift=open_shift_for(branch),
        coupon=coupon,
        subtotal=subtotal,
        discount=discount_amount,
        discount_type=discount_type,
        tax=tax,
        total=total,
        paid=paid,
        change=change,
        payment_method=payment_method,
        customer_name=customer_name,
        customer_phone=customer_phone,
        notes=notes,
    )
    sale.save()

    for line in lines:
        line.sale = sale
    SaleItem.objects.bulk_create(lines)

    reason = stock_reason or f"Sale {sale.invoice_number}"
    for line in sorted(lines, key=lambda line: str(line.variant_id)):
        deduct_stock(line.variant, branch, line.quantity, reason=reason, user=user)

    if payment_method == Sale.INSTALLMENT:
        create_installment_plan(
            sale,
            number_of_payments=installment["number_of_payments"],
            down_payment=paid,
            customer_name=installment.get("customer_name") or customer_name,
            customer_phone=installment.get("customer_phone") or customer_phone,
            user=user,
            notes=installment.get("notes", ""),
        )

    logger.info(
        "Sale %s recorded for tenant %s: total=%s method=%s",
        sale.invoice_number,
        tenant.id,
        total,
        payment_method,
    )
    return sale


# Refunds


@transaction.atomic
def refund_sale(sale, items, user, reason=""):
    """
    Return sale items and put them back into the branch's stock.

    Args:
        sale: Sale being refunded
        items: List of dicts {sale_item_id, quantity}
        user: User processing the refund
        reason: Why the items came back

    Returns:
        Refund

    Raises:
        RefundQuantityExceeded: When returning more than sold minus already returned
    """
    sale = Sale.objects.select_for_update().select_related("branch").get(pk=sale.pk)
    if sale.status == Sale.REFUNDED:
        raise DomainError(detail="تم استرجاع الفاتورة بالكامل مسبقاً", code="sale_already_refunded")

    sale_items = {
        str(item.id): item
        for item in SaleItem.objects.select_for_update()
        .select_related("variant__product")
        .filter(sale=sale)
    }

    requested = {}
    for entry in items:
        key = str(entry["sale_item_id"])
        if key not in sale_items:
            raise DomainError(detail="الصنف غير موجود في الفاتورة", code="sale_item_not_found")
        requested[key] = requested.get(key, 0) + entry["quantity"]

    refund = Refund(
        tenant=sale.tenant,
        refund_number=next_document_number(Refund, sale.tenant, "RET", "refund_number"),
        sale=sale,
        shift=open_shift_for(sale.branch),
        amount=ZERO,
        reason=reason,
        processed_by=user,
    )
    refund.save()

    amount = ZERO
    refund_lines = []
    for key in sorted(requested, key=lambda key: str(sale_items[key].variant_id)):
        item = sale_items[key]
        quantity = requested[key]
        if quantity <= 0 or quantity > item.returnable_quantity:
            raise RefundQuantityExceeded()

        line_amount = _money(item.total / item.quantity * quantity)
        amount += line_amount
        item.returned_quantity += quantity
        item.save(update_fields=["returned_quantity"])
        refund_lines.append(
            RefundItem(refund=refund, sale_item=item, quantity=quantity, amount=line_amount)
        )

        add_stock(
            item.variant,
            sale.branch,
            quantity,
            reason=f"Refund {refund.refund_number} of sale {sale.invoice_number}",
            user=user,
        )

    RefundItem.objects.bulk_create(refund_lines)

    amount = min(amount, sale.refundable_amount)
    refund.amount = amount
    refund.save(update_fields=["amount"])

    old_status = sale.status
    sale.refunded_total += amount
    if all(item.returnable_quantity == 0 for item in sale_items.values()):
        sale.mark_refunded()
    else:
        sale.mark_partially_refunded()
    sale.save()

    log_refund(sale, amount, [{"sale_item_id": k, "quantity": v} for k, v in requested.items()], user)
    if sale.status != old_status:
        log_status_change(sale, old_status, sale.status, user=user, reason=reason)

    return refund


# Shifts


@transaction.atomic
def open_shift(tenant, branch, user, opening_balance, notes=""):
    """
    Open a register shift on a branch.

    Raises:
        ShiftAlreadyOpen: When the branch already has an open shift
    """
    opening_balance = _money(opening_balance)
    if opening_balance < 0:
        raise DomainError(detail="رصيد البداية لا يمكن أن يكون سالباً", code="invalid_amount")

    if Shift.objects.filter(branch=branch, closed_at__isnull=True).exists():
        logger.warning("Shift already open on branch %s", branch.id)
        raise ShiftAlreadyOpen()

    try:
        with transaction.atomic():
            shift = Shift.objects.create(
                tenant=tenant,
                branch=branch,
                user=user,
                opening_balance=opening_balance,
                notes=notes,
            )
    except IntegrityError:
        raise ShiftAlreadyOpen()

    logger.info("Shift %s opened on branch %s by %s", shift.id, branch.id, user.username)
    return shift


def _locked_open_shift(shift):
    shift = Shift.objects.select_for_update().get(pk=shift.pk)
    if not shift.is_open:
        raise ShiftClosed()
    return shift


@transaction.atomic
def add_cash_transaction(shift, transaction_type, amount, user, reason=""):
    """Record a deposit into or withdrawal from an open shift's drawer."""
    shift = _locked_open_shift(shift)
    amount = _money(amount)
    if amount <= 0:
        raise DomainError(detail="المبلغ يجب أن يكون أكبر من صفر", code="invalid_amount")

    cash_transaction = CashTransaction.objects.create(
        shift=shift,
        transaction_type=transaction_type,
        amount=amount,
        reason=reason,
        created_by=user,
    )
    logger.info("Cash %s of %s on shift %s", transaction_type, amount, shift.id)
    return cash_transaction


def calculate_expected_cash(shift):
    """
    Cash that should be in the drawer.

    opening + cash sales - cash refunds + deposits - withdrawals, all
    counted on this shift only.
    """
    cash_sales = shift.sales.filter(payment_method=Sale.CASH).aggregate(total=Sum("total"))["total"]
    cash_refunds = shift.refunds.filter(sale__payment_method=Sale.CASH).aggregate(
        total=Sum("amount")
    )["total"]
    deposits = shift.transactions.filter(
        transaction_type=CashTransaction.DEPOSIT
    ).aggregate(total=Sum("amount"))["total"]
    withdrawals = shift.transactions.filter(
        transaction_type=CashTransaction.WITHDRAWAL
    ).aggregate(total=Sum("amount"))["total"]

    return (
        shift.opening_balance
        + (cash_sales or ZERO)
        - (cash_refunds or ZERO)
        + (deposits or ZERO)
        - (withdrawals or ZERO)
    )


@transaction.atomic
def close_shift(shift, actual_cash, user, notes=""):
    """
    Close a shift and record the counted cash against the expected amount.

    Raises:
        ShiftClosed: When the shift was already closed
    """
    shift = _locked_open_shift(shift)
    actual_cash = _money(actual_cash)
    if actual_cash < 0:
        raise DomainError(detail="المبلغ الفعلي لا يمكن أن يكون سالباً", code="invalid_amount")

    shift.expected_cash = calculate_expected_cash(shift)
    shift.actual_cash = actual_cash
    shift.difference = actual_cash - shift.expected_cash
    shift.closed_at = timezone.now()
    if notes:
        shift.notes = notes
    shift.save()

    if shift.difference != 0:
        logger.warning(
            "Shift %s closed with cash difference %s (expected %s, actual %s)",
            shift.id,
            shift.difference,
            shift.expected_cash,
            actual_cash,
        )
    else:
        logger.info("Shift %s closed by %s", shift.id, user.username)
    return shift


def current_shift(user):
    """The user's open shift, if any."""
    return (
        Shift.objects.filter(user=user, closed_at__isnull=True)
        .select_related("branch", "user")
        .prefetch_related("transactions")
        .first()
    )


# Installments


def create_installment_plan(
    sale, number_of_payments, down_payment, customer_name, user, customer_phone="", notes=""
):
    """
    Create the payment plan for an installment sale.

    remaining = total - down payment, split evenly (to the cent) across
    the payments; the first payment is due one month from today.
    """
    if number_of_payments < 1:
        raise DomainError(detail="عدد الأقساط يجب أن يكون 1 على الأقل", code="invalid_installments")

    remaining = _money(sale.total - down_payment)
    plan = Installment(
        tenant=sale.tenant,
        sale=sale,
        branch=sale.branch,
        created_by=user,
        customer_name=customer_name,
        customer_phone=customer_phone,
        total_amount=sale.total,
        down_payment=down_payment,
        remaining_amount=remaining,
        number_of_payments=number_of_payments,
        payment_per_installment=_money(remaining / number_of_payments),
        next_due_date=timezone.localdate() + relativedelta(months=1),
        notes=notes,
    )
    plan.save()

    if remaining == 0:
        plan.complete()
        plan.save()

    logger.info(
        "Installment plan %s created for sale %s: %s x %s",
        plan.id,
        sale.invoice_number,
        number_of_payments,
        plan.payment_per_installment,
    )
    return plan


@transaction.atomic
def add_installment_payment(installment, amount, user, payment_method=Sale.CASH, notes=""):
    """
    Record a payment on an active plan.

    Raises:
        InstallmentPaymentInvalid: When the amount is not in (0, remaining]
    """
    installment = Installment.objects.select_for_update().get(pk=installment.pk)
    if installment.status != Installment.ACTIVE:
        raise InstallmentPaymentInvalid(detail="خطة التقسيط مكتملة بالفعل")

    amount = _money(amount)
    if amount <= 0 or amount > installment.remaining_amount:
        logger.warning(
            "Rejected installment payment %s on plan %s (remaining %s)",
            amount,
            installment.id,
            installment.remaining_amount,
        )
        raise InstallmentPaymentInvalid()

    payment = InstallmentPayment.objects.create(
        installment=installment,
        amount=amount,
        payment_method=payment_method,
        notes=notes,
        received_by=user,
    )

    installment.remaining_amount -= amount
    installment.next_due_date = installment.next_due_date + relativedelta(months=1)
    if installment.remaining_amount == 0:
        installment.complete()
        log_status_change(installment, Installment.ACTIVE, Installment.COMPLETED, user=user)
    installment.save()

    logger.info(
        "Installment payment %s on plan %s, remaining %s",
        amount,
        installment.id,
        installment.remaining_amount,
    )
    return payment


def overdue_installments(tenant, today=None):
    """Active plans whose next due date has passed."""
    today = today or timezone.localdate()
    return Installment.objects.filter(
        tenant=tenant, status=Installment.ACTIVE, next_due_date__lt=today
    ).order_by("next_due_date")
