from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from django.utils import timezone

from apps.sales.models import Lead
from apps.security.services.access import authorize
from apps.security.services.query_scoping import apply_scope
from apps.tasks.models import Task, TaskStatus

RECENT_PER_MODULE = 5
CLOSED_TASK_STATUSES = [TaskStatus.COMPLETED, TaskStatus.CANCELLED]


def visible(requester, module: str, queryset, hierarchy=None):
    """``queryset`` limited to the module's view scope, or ``None`` without the capability."""
    decision = authorize(requester, module, "view", hierarchy=hierarchy)
    if not decision.allowed:
        return None
    return apply_scope(queryset, decision.visibility)


def dashboard_stats(requester, hierarchy=None, today: Optional[date] = None) -> Dict[str, Dict[str, int]]:
    today = today or timezone.localdate()
    employee_id = getattr(requester, "employee_id", None)
    leads = visible(requester, "leads", Lead.objects.all(), hierarchy)
    tasks = visible(requester, "tasks", Task.objects.all(), hierarchy)

    due_today = tasks.filter(due_date__date=today) if tasks is not None else None
    return {
        "global": {
            "total_leads": leads.count() if leads is not None else 0,
            "tasks_due_today": due_today.count() if due_today is not None else 0,
            "overdue_tasks": (
                tasks.filter(due_date__date__lt=today).exclude(status__in=CLOSED_TASK_STATUSES).count()
                if tasks is not None
                else 0
            ),
        },
        "personal": {
            "my_leads": leads.filter(owner_id=employee_id).count() if leads is not None else 0,
            "my_tasks_due_today": due_today.filter(assignee_id=employee_id).count() if due_today is not None else 0,
        },
    }


def recent_activity(requester, hierarchy=None, limit: int = 10) -> List[Dict[str, Any]]:
    """Newest leads and tasks the requester can see, merged newest first."""
    entries = []
    leads = visible(requester, "leads", Lead.objects.select_related("owner"), hierarchy)
    if leads is not None:
        for lead in leads.order_by("-created_at", "-id")[:RECENT_PER_MODULE]:
            entries.append({
                "type": "LEAD",
                "id": lead.pk,
                "message": f"New lead created: {lead.name}",
                "employee": lead.owner.full_name if lead.owner else None,
                "timestamp": lead.created_at,
            })
    tasks = visible(requester, "tasks", Task.objects.select_related("assignee"), hierarchy)
    if tasks is not None:
        for task in tasks.order_by("-created_at", "-id")[:RECENT_PER_MODULE]:
            entries.append({
                "type": "TASK",
                "id": task.pk,
                "message": f"New task assigned: {task.title}",
                "employee": task.assignee.full_name if task.assignee else None,
                "timestamp": task.created_at,
            })
    entries.sort(key=lambda entry: entry["timestamp"], reverse=True)
    return entries[:limit]
