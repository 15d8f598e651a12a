from rest_framework import serializers

from apps.hr.models import Employee

from .models import FollowUp, Lead, LeadAssignmentLog, LeadNote


class LeadNoteSerializer(serializers.ModelSerializer):
    author_name = serializers.CharField(source="author.full_name", read_only=True, default=None)

    class Meta:
        model = LeadNote
        fields = ["id", "lead", "author", "author_name", "content", "is_private", "created_at"]
        read_only_fields = ["lead", "author", "created_at"]


class FollowUpSerializer(serializers.ModelSerializer):
    employee_name = serializers.CharField(source="employee.full_name", read_only=True, default=None)

    class Meta:
        model = FollowUp
        fields = ["id", "lead", "employee", "employee_name", "scheduled_date", "outcome", "next_action", "created_at"]
        read_only_fields = ["lead", "employee", "created_at"]


class LeadAssignmentLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = LeadAssignmentLog
        fields = ["id", "assigned_by", "assigned_from", "assigned_to", "lead_status", "created_at"]


class LeadSerializer(serializers.ModelSerializer):
    owner_name = serializers.CharField(source="owner.full_name", read_only=True, default=None)
    department_name = serializers.CharField(source="department.name", read_only=True, default=None)

    class Meta:
        model = Lead
        fields = [
            "id",
            "name",
            "email",
            "phone",
            "company_name",
            "source",
            "notes",
            "status",
            "lost_reason",
            "owner",
            "owner_name",
            "department",
            "department_name",
            "created_at",
            "updated_at",
        ]
        # Ownership moves only through the assign action.
        read_only_fields = ["owner", "department", "created_at", "updated_at"]

    def validate(self, data):
        if data.get("status") == Lead.Status.LOST and not data.get("lost_reason"):
            data["lost_reason"] = getattr(self.instance, "lost_reason", "") or "No reason provided"
        return data


class LeadCreateSerializer(LeadSerializer):
    owner = serializers.PrimaryKeyRelatedField(
        queryset=Employee.objects.filter(is_active=True), required=False, allow_null=True
    )

    class Meta(LeadSerializer.Meta):
        read_only_fields = ["department", "created_at", "updated_at"]


class LeadDetailSerializer(LeadSerializer):
    lead_notes = serializers.SerializerMethodField()
    follow_ups = FollowUpSerializer(many=True, read_only=True)
    assignment_logs = LeadAssignmentLogSerializer(many=True, read_only=True)

    class Meta(LeadSerializer.Meta):
        fields = LeadSerializer.Meta.fields + ["lead_notes", "follow_ups", "assignment_logs"]

    def get_lead_notes(self, obj):
        viewer = self.context.get("viewer_employee_id")
        notes = [note for note in obj.lead_notes.all() if not note.is_private or note.author_id == viewer]
        return LeadNoteSerializer(notes, many=True).data


class LeadAssignSerializer(serializers.Serializer):
    assignee_id = serializers.PrimaryKeyRelatedField(
        queryset=Employee.objects.filter(is_active=True), source="assignee"
    )


class ConvertToProjectSerializer(serializers.Serializer):
    project_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
