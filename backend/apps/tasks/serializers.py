from __future__ import annotations

from rest_framework import serializers

from apps.hr.models import Employee

from .models import Task, TaskStatus


class TaskSerializer(serializers.ModelSerializer):
    assignee_name = serializers.CharField(source="assignee.full_name", read_only=True, default=None)
    creator_name = serializers.CharField(source="creator.full_name", read_only=True, default=None)
    assignee = serializers.PrimaryKeyRelatedField(
        queryset=Employee.objects.filter(is_active=True), required=False, allow_null=True
    )

    class Meta:
        model = Task
        fields = [
            "id",
            "title",
            "description",
            "due_date",
            "priority",
            "status",
            "completed_at",
            "assignee",
            "assignee_name",
            "creator",
            "creator_name",
            "lead",
            "project",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["creator", "completed_at", "created_at", "updated_at"]


class TaskStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TaskStatus.choices)


class TaskAssignSerializer(serializers.Serializer):
    assignee_id = serializers.PrimaryKeyRelatedField(
        queryset=Employee.objects.filter(is_active=True), source="assignee"
    )
