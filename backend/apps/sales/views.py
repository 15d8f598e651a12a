import logging

from django.db import transaction
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from apps.audit.utils import log_activity
from apps.security.mixins import ScopedQuerysetMixin
from apps.security.permissions import HasModulePermission
from apps.security.requester import get_requester
from apps.security.services.access import require

from .models import Lead, LeadAssignmentLog
from .serializers import (
    ConvertToProjectSerializer,
    FollowUpSerializer,
    LeadAssignSerializer,
    LeadCreateSerializer,
    LeadDetailSerializer,
    LeadNoteSerializer,
    LeadSerializer,
)

logger = logging.getLogger(__name__)


class LeadViewSet(ScopedQuerysetMixin, viewsets.ModelViewSet):
    """
    Leads, limited to the requester's leads:view scope.

    Edits, notes, follow-ups and conversion need leads:edit covering the lead;
    ownership changes go through ``assign``.
    """

    queryset = Lead.objects.select_related("owner", "department")
    serializer_class = LeadSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = "leads"
    permission_actions = {
        "assign": "assign",
        "add_note": "edit",
        "add_follow_up": "edit",
        "convert_to_project": "edit",
    }
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_serializer_class(self):
        if self.action == "create":
            return LeadCreateSerializer
        if self.action == "retrieve":
            return LeadDetailSerializer
        return LeadSerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        requester = get_requester(self.request)
        context["viewer_employee_id"] = getattr(requester, "employee_id", None)
        return context

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action == "retrieve":
            qs = qs.prefetch_related("lead_notes", "follow_ups", "assignment_logs")
        lead_status = self.request.query_params.get("status")
        if lead_status:
            qs = qs.filter(status=lead_status)
        return qs

    def perform_create(self, serializer):
        requester = get_requester(self.request)
        owner = serializer.validated_data.get("owner")
        if owner is not None and owner.pk != requester.employee_id:
            # Creating a lead on someone else's behalf is an assignment.
            require(requester, "leads", "assign", hierarchy=self.get_hierarchy())
        if owner is None:
            owner = self.get_requester_employee()
        if owner is None:
            raise ValidationError({"owner": "An owner is required when the requester has no employee profile."})

        lead = serializer.save(
            owner=owner,
            department=owner.department,
            created_by=self.request.user,
        )
        log_activity(self.request, "leads", "created", entity=lead, description=f"New lead created: {lead.name}")

    def perform_update(self, serializer):
        previous_status = serializer.instance.status
        lead = serializer.save()
        if lead.status != previous_status:
            log_activity(
                self.request,
                "leads",
                "status_changed",
                entity=lead,
                description=f"Lead status changed from {previous_status} to {lead.status}",
                metadata={"old_status": previous_status, "new_status": lead.status, "lost_reason": lead.lost_reason},
            )
        else:
            log_activity(self.request, "leads", "updated", entity=lead)

    def perform_destroy(self, instance):
        log_activity(self.request, "leads", "deleted", entity=instance, description=f"Lead deleted: {instance.name}")
        instance.delete()

    @action(detail=True, methods=["post"])
    def assign(self, request, pk=None):
        lead = self.get_object()
        serializer = LeadAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignee = serializer.validated_data["assignee"]

        with transaction.atomic():
            lead = Lead.objects.select_for_update().get(pk=lead.pk)
            previous_owner_id = lead.owner_id
            lead.owner = assignee
            lead.save(update_fields=["owner", "updated_at"])
            LeadAssignmentLog.objects.create(
                lead=lead,
                assigned_by=self.get_requester_employee(),
                assigned_from_id=previous_owner_id,
                assigned_to=assignee,
                lead_status=lead.status,
            )
        logger.info("Lead %s reassigned from %s to %s", lead.pk, previous_owner_id, assignee.pk)
        log_activity(
            request,
            "leads",
            "assigned",
            entity=lead,
            description=f"Lead reassigned to {assignee.full_name}",
            metadata={"from": previous_owner_id, "to": assignee.pk},
        )
        return Response(LeadSerializer(lead).data)

    @action(detail=True, methods=["post"], url_path="notes")
    def add_note(self, request, pk=None):
        lead = self.get_object()
        serializer = LeadNoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        note = serializer.save(lead=lead, author=self.get_requester_employee())
        snippet = note.content[:30] + ("..." if len(note.content) > 30 else "")
        log_activity(request, "leads", "note_added", entity=lead, description=f"New note added to lead: {snippet}")
        return Response(LeadNoteSerializer(note).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="follow-ups")
    def add_follow_up(self, request, pk=None):
        lead = self.get_object()
        serializer = FollowUpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        follow_up = serializer.save(lead=lead, employee=self.get_requester_employee())
        log_activity(
            request,
            "leads",
            "follow_up",
            entity=lead,
            description=f"Follow-up logged: {follow_up.outcome or 'No outcome provided'}",
        )
        return Response(FollowUpSerializer(follow_up).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="convert-to-project")
    def convert_to_project(self, request, pk=None):
        from apps.projects.models import Project
        from apps.projects.serializers import ProjectSerializer

        lead = self.get_object()
        serializer = ConvertToProjectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        if lead.status != Lead.Status.WON:
            raise ValidationError('Only "Won" leads can be converted to projects.')
        if Project.objects.filter(lead=lead).exists():
            raise ValidationError("This lead already has an associated project.")

        project = Project.objects.create(
            name=serializer.validated_data.get("project_name") or f"{lead.company_name or lead.name} - Implementation",
            description=serializer.validated_data.get("description") or "Project initiated from lead conversion.",
            lead=lead,
            relationship_manager=lead.owner,
            department=lead.department,
            created_by=request.user,
        )
        log_activity(
            request,
            "leads",
            "converted",
            entity=lead,
            description=f"Lead converted to project: {project.name}",
            metadata={"project_id": project.pk},
        )
        return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)
