"""
Audit logging helpers for the POS platform.

Stock movements, status transitions and administrative changes are written
to ``AuditLog`` inside the caller's transaction, so a rolled-back operation
leaves no audit trail behind.
"""

import logging

from django.contrib.contenttypes.models import ContentType

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Extract client IP address from request.

    Args:
        request: HTTP request object

    Returns:
        str: Client IP address
    """
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        ip = x_forwarded_for.split(",")[0]
    else:
        ip = request.META.get("REMOTE_ADDR")
    return ip


def _create_entry(
    *,
    tenant,
    user,
    category,
    action,
    description,
    instance=None,
    old_values=None,
    new_values=None,
    severity=None,
    request=None,
):
    from apps.core.audit_models import AuditLog

    return AuditLog.objects.create(
        tenant=tenant,
        user=user if user is not None and user.is_authenticated else None,
        category=category,
        action=action,
        severity=severity or AuditLog.SEVERITY_INFO,
        description=description,
        content_type=ContentType.objects.get_for_model(instance) if instance is not None else None,
        object_id=str(instance.pk) if instance is not None else None,
        old_values=old_values,
        new_values=new_values,
        ip_address=get_client_ip(request) if request else None,
        request_path=request.path if request else "",
    )


def log_tenant_action(tenant, user=None, old_values=None, new_values=None, request=None):
    """Log a change to tenant settings such as the business type."""
    from apps.core.audit_models import AuditLog

    return _create_entry(
        tenant=tenant,
        user=user,
        category=AuditLog.CATEGORY_ADMIN,
        action=AuditLog.ACTION_TENANT_UPDATE,
        description=f"Updated tenant: {tenant.company_name}",
        instance=tenant,
        old_values=old_values,
        new_values=new_values,
        request=request,
    )


def log_feature_override(tenant, feature, enabled, user=None, request=None):
    from apps.core.audit_models import AuditLog

    return _create_entry(
        tenant=tenant,
        user=user,
        category=AuditLog.CATEGORY_ADMIN,
        action=AuditLog.ACTION_FEATURE_OVERRIDE,
        description=f"Feature {feature} override set to {enabled}",
        instance=tenant,
        new_values={"feature": feature, "enabled": enabled},
        request=request,
    )


def log_data_change(instance, change_type, user=None, old_values=None, new_values=None):
    """
    Log a create/update/delete on a tenant-owned record.

    Args:
        instance: Model instance that was modified
        change_type: "CREATE", "UPDATE", or "DELETE"
        user: User who made the change
        old_values: Previous values (for updates)
        new_values: New values (for creates/updates)
    """
    from apps.core.audit_models import AuditLog

    action_map = {
        "CREATE": AuditLog.ACTION_CREATE,
        "UPDATE": AuditLog.ACTION_UPDATE,
        "DELETE": AuditLog.ACTION_DELETE,
    }

    return _create_entry(
        tenant=getattr(instance, "tenant", None),
        user=user,
        category=AuditLog.CATEGORY_DATA,
        action=action_map.get(change_type, AuditLog.ACTION_UPDATE),
        description=f"{change_type.title()} {instance._meta.verbose_name}: {instance}",
        instance=instance,
        old_values=old_values,
        new_values=new_values,
    )


def log_stock_movement(inventory, action, quantity, before, after, reason, user=None):
    """
    Log a change to an inventory row.

    Args:
        inventory: Inventory row that changed
        action: AuditLog.ACTION_STOCK_IN / ACTION_STOCK_OUT / ACTION_STOCK_SET
        quantity: Quantity moved (or the new absolute quantity for a set)
        before: Quantity before the movement
        after: Quantity after the movement
        reason: Why the stock moved (sale, transfer, purchase receipt, ...)
        user: User responsible
    """
    from apps.core.audit_models import AuditLog

    logger.info(
        "Stock %s: variant=%s branch=%s qty=%s (%s -> %s) reason=%s",
        action,
        inventory.variant_id,
        inventory.branch_id,
        quantity,
        before,
        after,
        reason,
    )

    return _create_entry(
        tenant=inventory.tenant,
        user=user,
        category=AuditLog.CATEGORY_INVENTORY,
        action=action,
        description=reason,
        instance=inventory,
        old_values={"quantity": before},
        new_values={"quantity": after, "moved": quantity},
    )


def log_status_change(instance, old_status, new_status, user=None, reason=""):
    """Log a state machine transition on an order, sale, transfer or purchase."""
    from apps.core.audit_models import AuditLog

    logger.info(
        "%s %s: %s -> %s", instance._meta.model_name, instance.pk, old_status, new_status
    )

    description = f"{instance._meta.verbose_name} {instance}: {old_status} -> {new_status}"
    if reason:
        description = f"{description} ({reason})"

    return _create_entry(
        tenant=instance.tenant,
        user=user,
        category=AuditLog.CATEGORY_WORKFLOW,
        action=AuditLog.ACTION_STATUS_CHANGE,
        description=description,
        instance=instance,
        old_values={"status": old_status},
        new_values={"status": new_status},
    )


def log_refund(sale, amount, items, user=None):
    from apps.core.audit_models import AuditLog

    return _create_entry(
        tenant=sale.tenant,
        user=user,
        category=AuditLog.CATEGORY_WORKFLOW,
        action=AuditLog.ACTION_REFUND,
        description=f"Refund of {amount} on sale {sale.invoice_number}",
        instance=sale,
        new_values={"amount": str(amount), "items": items},
        severity=AuditLog.SEVERITY_WARNING,
    )
