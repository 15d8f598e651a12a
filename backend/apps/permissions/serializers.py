from rest_framework import serializers

from .models import Permission, Role


class PermissionSerializer(serializers.ModelSerializer):
    code = serializers.CharField(read_only=True)

    class Meta:
        model = Permission
        fields = ["id", "code", "module", "action", "scope_type", "description"]


class RoleSerializer(serializers.ModelSerializer):
    permission_count = serializers.SerializerMethodField()

    class Meta:
        model = Role
        fields = [
            "id",
            "code",
            "name",
            "description",
            "department",
            "is_active",
            "is_super_admin",
            "is_system_role",
            "permission_count",
        ]
        read_only_fields = ["is_system_role"]

    def get_permission_count(self, obj):
        return obj.role_permissions.count()


class RolePermissionSyncSerializer(serializers.Serializer):
    permission_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=True)


class PendingUserSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    email = serializers.EmailField()
    date_joined = serializers.DateTimeField()
    employee = serializers.SerializerMethodField()

    def get_employee(self, user):
        employee = getattr(user, "employee_profile", None)
        if employee is None:
            return None
        return {"id": employee.pk, "employee_id": employee.employee_id, "full_name": employee.full_name}
