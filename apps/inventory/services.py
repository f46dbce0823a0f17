"""
Stock service: the only code that writes inventory quantities.

Every function expects to run inside ``transaction.atomic()``; rows are
locked with ``select_for_update`` before they are read, so concurrent sales,
transfers and receipts serialize on the stock row they touch. Callers that
touch several rows lock them in primary key order.
"""

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import F

from apps.core.audit import log_stock_movement, log_status_change
from apps.core.audit_models import AuditLog
from apps.core.exceptions import (
    DomainError,
    InsufficientStock,
    InvalidQuantity,
    NotFound,
    ReceiptQuantityExceeded,
    SameBranchTransfer,
)
from apps.core.numbering import next_document_number

from .models import (
    Inventory,
    PurchaseOrder,
    PurchaseOrderItem,
    StockTransfer,
    StockTransferItem,
    default_min_stock,
)

logger = logging.getLogger(__name__)

SET = "set"
ADD = "add"
SUBTRACT = "subtract"
STOCK_OPERATIONS = [SET, ADD, SUBTRACT]


def _lock_row(variant, branch):
    return Inventory.objects.select_for_update().filter(variant=variant, branch=branch).first()


def _lock_or_create_row(variant, branch, min_stock=None):
    row = _lock_row(variant, branch)
    if row is not None:
        return row
    try:
        with transaction.atomic():
            return Inventory.objects.create(
                tenant_id=variant.tenant_id,
                variant=variant,
                branch=branch,
                quantity=0,
                min_stock=default_min_stock() if min_stock is None else min_stock,
            )
    except IntegrityError:
        # Another writer created the row first
        return _lock_row(variant, branch)


def deduct_stock(variant, branch, quantity, reason="", user=None):
    """
    Remove stock at a branch.

    Products that do not track stock are skipped.

    Args:
        variant: ProductVariant being sold/shipped
        branch: Branch holding the stock
        quantity: Positive number of units
        reason: Audit trail reason
        user: User responsible

    Returns:
        Inventory | None: The updated row (None for untracked products)

    Raises:
        InsufficientStock: When the row is missing or short
    """
    if quantity <= 0:
        raise DomainError(detail="الكمية يجب أن تكون أكبر من صفر", code="invalid_quantity")

    if not variant.product.track_stock:
        return None

    row = _lock_row(variant, branch)
    available = row.quantity if row is not None else 0
    if row is None or available < quantity:
        logger.warning(
            "Insufficient stock for variant %s at branch %s: requested=%s available=%s",
            variant.id,
            branch.id,
            quantity,
            available,
        )
        raise InsufficientStock(
            variant=variant, branch=branch, requested=quantity, available=available
        )

    before = row.quantity
    row.quantity = before - quantity
    row.save(update_fields=["quantity", "updated_at"])
    log_stock_movement(
        row, AuditLog.ACTION_STOCK_OUT, quantity, before, row.quantity, reason, user=user
    )
    return row


def add_stock(variant, branch, quantity, reason="", user=None):
    """
    Add stock at a branch, creating the row when needed.

    New rows start with the default low stock threshold.
    """
    if quantity <= 0:
        raise DomainError(detail="الكمية يجب أن تكون أكبر من صفر", code="invalid_quantity")

    if not variant.product.track_stock:
        return None

    row = _lock_or_create_row(variant, branch)
    before = row.quantity
    row.quantity = before + quantity
    row.save(update_fields=["quantity", "updated_at"])
    log_stock_movement(
        row, AuditLog.ACTION_STOCK_IN, quantity, before, row.quantity, reason, user=user
    )
    return row


def update_stock(variant, branch, quantity, operation=SET, min_stock=None, reason="", user=None):
    """
    Manual stock update used by the inventory screen.

    Args:
        operation: "set" (absolute), "add" or "subtract"
        min_stock: Optional new low stock threshold

    Raises:
        InsufficientStock: When subtracting more than is on hand
    """
    if operation not in STOCK_OPERATIONS:
        raise DomainError(detail="عملية غير صالحة", code="invalid_operation")
    if quantity < 0:
        raise DomainError(detail="الكمية لا يمكن أن تكون سالبة", code="invalid_quantity")

    row = _lock_or_create_row(variant, branch, min_stock=min_stock)
    before = row.quantity

    if operation == ADD:
        after = before + quantity
        action = AuditLog.ACTION_STOCK_IN
    elif operation == SUBTRACT:
        after = before - quantity
        action = AuditLog.ACTION_STOCK_OUT
        if after < 0:
            raise InsufficientStock(
                variant=variant, branch=branch, requested=quantity, available=before
            )
    else:
        after = quantity
        action = AuditLog.ACTION_STOCK_SET

    row.quantity = after
    update_fields = ["quantity", "updated_at"]
    if min_stock is not None:
        row.min_stock = min_stock
        update_fields.append("min_stock")
    row.save(update_fields=update_fields)

    log_stock_movement(row, action, quantity, before, after, reason or "Manual update", user=user)
    return row


def adjust_stock(branch, items, reason, user=None):
    """
    Stock count adjustment: set several variants to counted quantities.

    Args:
        branch: Branch being counted
        items: List of (variant, new_quantity)
        reason: Why the count differs

    Returns:
        list[Inventory]
    """
    rows = []
    for variant, new_quantity in sorted(items, key=lambda pair: str(pair[0].pk)):
        rows.append(
            update_stock(
                variant,
                branch,
                new_quantity,
                operation=SET,
                reason=f"Stock adjustment: {reason}",
                user=user,
            )
        )
    return rows


# Purchase orders


@transaction.atomic
def create_purchase_order(tenant, supplier, branch, items, user, notes="", auto_receive=False):
    """
    Create a purchase order.

    Args:
        items: List of dicts {variant, quantity, unit_cost}
        auto_receive: Receive every line immediately

    Returns:
        PurchaseOrder
    """
    purchase_order = PurchaseOrder(
        tenant=tenant,
        po_number=next_document_number(PurchaseOrder, tenant, "PO", "po_number"),
        supplier=supplier,
        branch=branch,
        created_by=user,
        notes=notes,
    )
    purchase_order.save()

    lines = [
        PurchaseOrderItem(
            purchase_order=purchase_order,
            variant=item["variant"],
            quantity=item["quantity"],
            unit_cost=item["unit_cost"],
        )
        for item in items
    ]
    PurchaseOrderItem.objects.bulk_create(lines)

    purchase_order.total = sum((line.total_cost for line in lines), Decimal("0.00"))
    purchase_order.save(update_fields=["total"])

    logger.info("Purchase order %s created for tenant %s", purchase_order.po_number, tenant.id)

    if auto_receive:
        receive_purchase_order(
            purchase_order,
            [{"item_id": line.id, "quantity": line.quantity} for line in lines],
            user,
        )
        purchase_order.refresh_from_db()

    return purchase_order


@transaction.atomic
def receive_purchase_order(purchase_order, items, user):
    """
    Receive goods against a purchase order.

    Args:
        items: List of dicts {item_id, quantity}

    Raises:
        ReceiptQuantityExceeded: When a line would be received above the ordered quantity
    """
    purchase_order = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    if purchase_order.status not in (PurchaseOrder.PENDING, PurchaseOrder.PARTIAL):
        raise DomainError(detail="لا يمكن استلام أمر شراء بهذه الحالة", code="invalid_status_transition")

    lines = {
        str(line.id): line
        for line in purchase_order.items.select_for_update().select_related("variant__product")
    }

    for entry in sorted(items, key=lambda entry: str(entry["item_id"])):
        line = lines.get(str(entry["item_id"]))
        if line is None:
            raise NotFound(detail="عنصر أمر الشراء غير موجود")
        quantity = entry["quantity"]
        if quantity < 0:
            raise InvalidQuantity()
        if quantity == 0:
            continue
        if quantity > line.remaining_quantity:
            raise ReceiptQuantityExceeded()

        line.received_quantity += quantity
        line.save(update_fields=["received_quantity"])
        add_stock(
            line.variant,
            purchase_order.branch,
            quantity,
            reason=f"Purchase order {purchase_order.po_number} receipt",
            user=user,
        )

    old_status = purchase_order.status
    if all(line.is_fully_received for line in lines.values()):
        purchase_order.mark_received()
    elif old_status == PurchaseOrder.PENDING and any(
        line.received_quantity > 0 for line in lines.values()
    ):
        purchase_order.mark_partially_received()

    if purchase_order.status != old_status:
        purchase_order.save()
        log_status_change(purchase_order, old_status, purchase_order.status, user=user)

    return purchase_order


@transaction.atomic
def cancel_purchase_order(purchase_order, user):
    purchase_order = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    if purchase_order.status == PurchaseOrder.RECEIVED:
        raise DomainError(detail="لا يمكن إلغاء أمر شراء مستلم", code="purchase_order_received")

    old_status = purchase_order.status
    purchase_order.cancel()
    purchase_order.save()
    log_status_change(purchase_order, old_status, purchase_order.status, user=user)
    return purchase_order


# Stock transfers


@transaction.atomic
def create_transfer(tenant, from_branch, to_branch, items, user, notes="", direct=True):
    """
    Request a stock transfer between two branches of the same tenant.

    Args:
        items: List of dicts {variant, quantity}; a variant may appear once
        direct: Ship and receive in the same transaction

    Raises:
        SameBranchTransfer: When source and destination are the same
        InsufficientStock: When the source does not hold the requested stock
    """
    if from_branch.pk == to_branch.pk:
        raise SameBranchTransfer()
    if from_branch.tenant_id != tenant.id or to_branch.tenant_id != tenant.id:
        raise NotFound(detail="الفرع غير موجود")

    variant_ids = [item["variant"].pk for item in items]
    if len(variant_ids) != len(set(variant_ids)):
        raise DomainError(detail="لا يمكن تكرار المنتج في نفس التحويل", code="duplicate_items")

    # Availability check at request time; shipping re-checks under lock
    stock = dict(
        Inventory.objects.filter(branch=from_branch, variant_id__in=variant_ids).values_list(
            "variant_id", "quantity"
        )
    )
    for item in items:
        variant = item["variant"]
        if variant.product.track_stock and stock.get(variant.pk, 0) < item["quantity"]:
            raise InsufficientStock(
                variant=variant,
                branch=from_branch,
                requested=item["quantity"],
                available=stock.get(variant.pk, 0),
            )

    transfer = StockTransfer(
        tenant=tenant,
        transfer_number=next_document_number(StockTransfer, tenant, "TRF", "transfer_number"),
        from_branch=from_branch,
        to_branch=to_branch,
        requested_by=user,
        notes=notes,
    )
    transfer.save()

    StockTransferItem.objects.bulk_create(
        [
            StockTransferItem(transfer=transfer, variant=item["variant"], quantity=item["quantity"])
            for item in items
        ]
    )

    logger.info(
        "Transfer %s created: %s -> %s", transfer.transfer_number, from_branch.id, to_branch.id
    )

    if direct:
        transfer = ship_transfer(transfer, user)
        transfer = receive_transfer(transfer, user)

    return transfer


def _locked_transfer(transfer):
    return StockTransfer.objects.select_for_update().select_related(
        "from_branch", "to_branch"
    ).get(pk=transfer.pk)


@transaction.atomic
def ship_transfer(transfer, user):
    """Deduct all items at the source (all-or-nothing)."""
    transfer = _locked_transfer(transfer)
    old_status = transfer.status
    transfer.ship(user)
    transfer.save()
    log_status_change(transfer, old_status, transfer.status, user=user)
    return transfer


@transaction.atomic
def receive_transfer(transfer, user, received_quantities=None):
    """
    Add received stock at the destination.

    Args:
        received_quantities: Optional dict item_id -> quantity. A quantity may be
            below the shipped amount (recorded as a discrepancy) but not above.
    """
    transfer = _locked_transfer(transfer)

    if received_quantities:
        shipped = {str(item_id): qty for item_id, qty in transfer.items.values_list("id", "quantity")}
        for item_id, quantity in received_quantities.items():
            if str(item_id) not in shipped:
                raise NotFound(detail="عنصر التحويل غير موجود")
            if quantity < 0:
                raise InvalidQuantity()
            if quantity > shipped[str(item_id)]:
                raise ReceiptQuantityExceeded()
        received_quantities = {str(k): v for k, v in received_quantities.items()}

    old_status = transfer.status
    transfer.receive(user, received_quantities)
    transfer.save()
    log_status_change(transfer, old_status, transfer.status, user=user)
    return transfer


@transaction.atomic
def cancel_transfer(transfer, user, reason=""):
    transfer = _locked_transfer(transfer)
    old_status = transfer.status
    transfer.cancel(user, reason)
    transfer.save()
    log_status_change(transfer, old_status, transfer.status, user=user, reason=reason)
    return transfer


def low_stock_queryset(tenant, branch=None):
    """Stock rows at or below their own alert threshold."""
    queryset = Inventory.objects.filter(tenant=tenant, quantity__lte=F("min_stock"))
    if branch is not None:
        queryset = queryset.filter(branch=branch)
    return queryset
