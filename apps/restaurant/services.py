"""
Order service for restaurants and cafes.

Orders move through the kitchen flow and become a Sale at checkout. The
checkout locks the order, records the sale (which deducts stock at the
order's branch) and releases the table in one transaction; an
InsufficientStock error leaves the order unpaid and the stock untouched.
"""

import logging
from decimal import Decimal

from django.db import transaction

from apps.core.audit import log_data_change, log_status_change
from apps.core.exceptions import (
    BranchRequired,
    DomainError,
    InvalidStatusTransition,
    OrderAlreadyPaid,
    OrderNotEditable,
    TableHasActiveOrders,
    TableRequired,
)
from apps.core.feature_flags import get_effective_config
from apps.core.numbering import next_document_number
from apps.sales.models import Sale
from apps.sales.services import record_sale

from .models import Order, OrderItem, RestaurantTable

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _build_items(order, items):
    lines = []
    for item in items:
        variant = item["variant"]
        unit_price = item.get("unit_price")
        lines.append(
            OrderItem(
                order=order,
                variant=variant,
                quantity=item["quantity"],
                unit_price=variant.price if unit_price is None else Decimal(unit_price),
                notes=item.get("notes", ""),
            )
        )
    return lines


def _release_table(order):
    table = order.table
    if table is None:
        return
    table = RestaurantTable.objects.select_for_update().get(pk=table.pk)
    if not table.has_active_orders(exclude=order):
        table.status = RestaurantTable.AVAILABLE
        table.save(update_fields=["status", "updated_at"])
        logger.info("Table %s released", table.id)


@transaction.atomic
def create_order(tenant, user, items, order_type=Order.DINE_IN, table=None, customer_name="", notes=""):
    """
    Open a kitchen order at the user's branch.

    Args:
        tenant: Tenant taking the order
        user: Waiter or cashier; must be assigned to a branch
        items: List of dicts {variant, quantity, unit_price (optional), notes (optional)}
        order_type: dine_in, takeaway or delivery
        table: RestaurantTable for dine-in orders

    Returns:
        Order

    Raises:
        BranchRequired: When the user has no branch
        TableRequired: When the tenant requires a table for dine-in orders
    """
    if not user.branch_id:
        raise BranchRequired()
    if not items:
        raise DomainError(detail="يجب إضافة عناصر للطلب", code="empty_order")

    branch = user.branch
    config = get_effective_config(tenant)
    if table is None and order_type == Order.DINE_IN and config["pos"].get("require_table"):
        raise TableRequired()

    if table is not None:
        table = RestaurantTable.objects.select_for_update().get(pk=table.pk)
        if table.tenant_id != tenant.id or table.branch_id != branch.id:
            raise DomainError(detail="الطاولة غير موجودة", code="table_not_found")

    order = Order.objects.create(
        tenant=tenant,
        order_number=next_document_number(Order, tenant, "ORD", "order_number"),
        order_type=order_type,
        table=table,
        branch=branch,
        user=user,
        customer_name=customer_name,
        notes=notes,
    )
    OrderItem.objects.bulk_create(_build_items(order, items))
    order.recalculate_totals()
    order.save(update_fields=["subtotal", "total", "updated_at"])

    if table is not None and table.status != RestaurantTable.OCCUPIED:
        table.status = RestaurantTable.OCCUPIED
        table.save(update_fields=["status", "updated_at"])

    log_data_change(order, "CREATE", user=user, new_values={"total": str(order.total)})
    logger.info("Order %s created for tenant %s (%s)", order.order_number, tenant.id, order_type)
    return order


@transaction.atomic
def add_items(order, items, user):
    """
    Add items to an order still in the kitchen queue.

    Raises:
        OrderNotEditable: Unless the order is pending or preparing
    """
    order = Order.objects.select_for_update().get(pk=order.pk)
    if not order.is_editable:
        raise OrderNotEditable()
    if not items:
        raise DomainError(detail="يجب إضافة عناصر للطلب", code="empty_order")

    old_total = order.total
    OrderItem.objects.bulk_create(_build_items(order, items))
    order.recalculate_totals()
    order.save(update_fields=["subtotal", "total", "updated_at"])

    log_data_change(
        order,
        "UPDATE",
        user=user,
        old_values={"total": str(old_total)},
        new_values={"total": str(order.total)},
    )
    return order


@transaction.atomic
def update_status(order, new_status, user):
    """
    Move an order forward in the kitchen flow.

    ``paid`` is only reachable through checkout and ``cancelled`` through
    cancel_order.

    Raises:
        InvalidStatusTransition: For unknown, backward or terminal moves
    """
    order = Order.objects.select_for_update().get(pk=order.pk)

    if new_status == Order.CANCELLED:
        return cancel_order(order, user)
    if new_status == Order.PAID:
        raise InvalidStatusTransition(detail="يتم الدفع من خلال إتمام الطلب فقط")
    if not order.is_forward(new_status):
        logger.warning(
            "Rejected order %s transition %s -> %s", order.order_number, order.status, new_status
        )
        raise InvalidStatusTransition()

    transitions = {
        Order.PREPARING: order.start_preparing,
        Order.READY: order.mark_ready,
        Order.SERVED: order.mark_served,
    }
    old_status = order.status
    transitions[new_status]()
    order.save()

    log_status_change(order, old_status, order.status, user=user)
    return order


@transaction.atomic
def cancel_order(order, user, reason=""):
    """
    Cancel an active order and free its table when nothing else is seated there.

    Raises:
        OrderAlreadyPaid: When the order is paid or already cancelled
    """
    order = Order.objects.select_for_update().select_related("table").get(pk=order.pk)
    if not order.is_active:
        raise OrderAlreadyPaid()

    old_status = order.status
    order.cancel()
    order.save()
    _release_table(order)

    log_status_change(order, old_status, order.status, user=user, reason=reason)
    return order


@transaction.atomic
def checkout(
    order,
    user,
    discount=ZERO,
    discount_type=Sale.DISCOUNT_AMOUNT,
    coupon_code=None,
    tax=ZERO,
    paid=None,
    payment_method=Sale.CASH,
    customer_phone="",
):
    """
    Pay an order: record the sale, mark the order paid and free the table.

    Returns:
        tuple: (Order, Sale)

    Raises:
        OrderAlreadyPaid: When the order is no longer active
        InsufficientStock: When the branch cannot cover an item; nothing is saved
    """
    order = Order.objects.select_for_update().select_related("table", "branch").get(pk=order.pk)
    if not order.is_active:
        raise OrderAlreadyPaid()

    items = [
        {"variant": item.variant, "quantity": item.quantity, "unit_price": item.unit_price}
        for item in order.items.select_related("variant__product")
    ]
    if not items:
        raise DomainError(detail="الطلب لا يحتوي على عناصر", code="empty_order")

    sale = record_sale(
        order.tenant,
        order.branch,
        user,
        items,
        discount=discount,
        discount_type=discount_type,
        coupon_code=coupon_code,
        tax=tax,
        paid=paid,
        payment_method=payment_method,
        customer_name=order.customer_name,
        customer_phone=customer_phone,
        notes=order.notes,
        stock_reason=f"Order {order.order_number} checkout",
    )

    old_status = order.status
    order.discount = sale.discount
    order.total = sale.total
    order.mark_paid(sale)
    order.save()
    _release_table(order)

    log_status_change(order, old_status, order.status, user=user, reason=sale.invoice_number)
    logger.info("Order %s paid with sale %s", order.order_number, sale.invoice_number)
    return order, sale


@transaction.atomic
def delete_table(table, user):
    """
    Delete a table that has no active orders.

    Raises:
        TableHasActiveOrders: While an order is still open on the table
    """
    table = RestaurantTable.objects.select_for_update().get(pk=table.pk)
    if table.has_active_orders():
        raise TableHasActiveOrders()
    log_data_change(table, "DELETE", user=user, old_values={"name": table.name})
    table.delete()
