"""
Per-tenant document numbers in the form ``PREFIX-YYYYMMDD-NNNN``.
"""

from django.utils import timezone

from apps.core.models import Tenant


def next_document_number(model, tenant, prefix, field):
    """
    Build the next document number for today.

    The sequence restarts every day and is scoped to the tenant. The tenant
    row is locked first, so concurrent writers of the same tenant count one
    after the other; the caller must be inside ``transaction.atomic`` and
    save the document before committing. The tenant lock is taken after
    the document's own row locks and before any inventory row.

    Args:
        model: Model class holding the number field
        tenant: Owning tenant
        prefix: Document prefix such as "INV", "ORD", "TRF" or "PO"
        field: Name of the number field on the model

    Returns:
        str: e.g. "INV-20240115-0007"
    """
    Tenant.objects.select_for_update().values_list("pk", flat=True).get(pk=tenant.pk)

    date_str = timezone.localdate().strftime("%Y%m%d")
    stem = f"{prefix}-{date_str}-"
    today_count = (
        model.objects.filter(tenant=tenant, **{f"{field}__startswith": stem}).count() + 1
    )
    return f"{stem}{today_count:04d}"
