"""
Mixins and query parameter helpers for tenant-scoped API views.
"""

from rest_framework import serializers

from apps.core.exceptions import InvalidFilter


class TenantScopedMixin:
    """
    Restrict a generic API view to rows owned by the requesting user's tenant.

    Usage:
        class ProductListView(TenantScopedMixin, generics.ListCreateAPIView):
            queryset = Product.objects.all()
    """

    tenant_field = "tenant"

    def get_queryset(self):
        queryset = super().get_queryset()
        return queryset.filter(**{self.tenant_field: self.request.user.tenant})

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["tenant"] = self.request.user.tenant
        return context


def parse_query_param(request, name, field):
    """
    Parse a query parameter with a serializer field.

    Returns None when the parameter is missing or empty, and raises
    InvalidFilter (400) when the value does not parse.
    """
    value = request.query_params.get(name)
    if value in (None, ""):
        return None
    try:
        return field.to_internal_value(value)
    except serializers.ValidationError:
        raise InvalidFilter(detail=f"قيمة غير صالحة للمعامل {name}")


def uuid_param(request, name):
    return parse_query_param(request, name, serializers.UUIDField())


def date_param(request, name):
    return parse_query_param(request, name, serializers.DateField())
