"""
Serializers for authentication, tenant settings and branches.
"""

from django.contrib.auth import get_user_model

from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .business_config import BUSINESS_TYPE_CHOICES, FEATURES
from .models import Branch, Tenant

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom JWT token serializer that includes tenant and business type claims.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)

        # Add custom claims
        token["username"] = user.username
        token["role"] = user.role
        token["tenant_id"] = str(user.tenant_id) if user.tenant_id else None
        token["branch_id"] = str(user.branch_id) if user.branch_id else None
        token["business_type"] = user.tenant.business_type if user.tenant_id else None

        return token

    def validate(self, attrs):
        data = super().validate(attrs)

        # Add user information to response
        data["user"] = {
            "id": self.user.id,
            "username": self.user.username,
            "role": self.user.role,
            "tenant_id": str(self.user.tenant_id) if self.user.tenant_id else None,
            "branch_id": str(self.user.branch_id) if self.user.branch_id else None,
            "business_type": self.user.tenant.business_type if self.user.tenant_id else None,
        }

        return data


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for User model.
    """

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "role",
            "tenant",
            "branch",
            "phone",
            "is_active",
            "date_joined",
            "last_login",
        ]
        read_only_fields = ["id", "role", "tenant", "branch", "is_active", "date_joined", "last_login"]


class TenantSerializer(serializers.ModelSerializer):
    """
    Tenant settings visible to the business owner.
    """

    business_type = serializers.ChoiceField(choices=BUSINESS_TYPE_CHOICES, required=False)

    class Meta:
        model = Tenant
        fields = [
            "id",
            "company_name",
            "slug",
            "business_type",
            "status",
            "currency",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "slug", "status", "created_at", "updated_at"]


class FeatureOverrideSerializer(serializers.Serializer):
    """
    Input for forcing a feature on/off for a tenant.

    ``enabled: null`` clears the override.
    """

    feature = serializers.ChoiceField(choices=FEATURES)
    enabled = serializers.BooleanField(allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class BranchSerializer(serializers.ModelSerializer):
    """
    Serializer for Branch model.
    """

    class Meta:
        model = Branch
        fields = [
            "id",
            "name",
            "address",
            "phone",
            "is_warehouse",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_name(self, value):
        tenant = self.context["tenant"]
        queryset = Branch.objects.filter(tenant=tenant, name=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("يوجد فرع بنفس الاسم")
        return value
