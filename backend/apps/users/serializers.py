from rest_framework import serializers
from django.contrib.auth import get_user_model, password_validation

from apps.permissions.services.catalog import PermissionCatalog
from apps.security.requester import resolve_requester

User = get_user_model()


class EmployeeSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    employee_id = serializers.CharField()
    full_name = serializers.CharField()
    department = serializers.IntegerField(source="department_id")
    department_name = serializers.CharField(source="department.name")
    manager = serializers.IntegerField(source="manager_id", allow_null=True)
    role = serializers.CharField(source="role.code", default=None)


class UserSerializer(serializers.ModelSerializer):
    employee = serializers.SerializerMethodField()
    effective_permissions = serializers.SerializerMethodField()
    is_super_admin = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = (
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'phone',
            'is_active',
            'date_joined',
            'last_login',
            'employee',
            'is_super_admin',
            'effective_permissions',
        )
        read_only_fields = ('username', 'date_joined', 'last_login', 'is_active')

    def get_employee(self, obj):
        employee = obj.employee
        if employee is None:
            return None
        return EmployeeSummarySerializer(employee).data

    def get_is_super_admin(self, obj):
        requester = resolve_requester(obj)
        return bool(requester and requester.is_super_admin)

    def get_effective_permissions(self, obj):
        """``{module: {action: scope}}``; a super admin holds every registered action at ``all``."""
        requester = resolve_requester(obj)
        if requester is None:
            return {}
        if requester.is_super_admin:
            from apps.permissions.defaults import admin_matrix

            return {module: {action: "all" for action in actions} for module, actions in admin_matrix().items()}
        if requester.is_unassigned or not requester.role_is_active or not requester.is_active:
            return {}
        grants = {}
        for module, action in sorted({(g.module, g.action) for g in PermissionCatalog.get_permissions_for_role(requester.role_id)}):
            scope = PermissionCatalog.scope_for(requester.role_id, module, action)
            grants.setdefault(module, {})[action] = scope.value
        return grants


class ChangePasswordSerializer(serializers.Serializer):
    old_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)

    def validate_old_password(self, value):
        if not self.context['request'].user.check_password(value):
            raise serializers.ValidationError('Wrong password.')
        return value

    def validate_new_password(self, value):
        password_validation.validate_password(value, self.context['request'].user)
        return value
