from apps.hr.services.hierarchy import HierarchyIndex
from apps.security.requester import get_requester
from apps.security.services.access import resolve_visibility
from apps.security.services.query_scoping import apply_scope

TRUE_VALUES = {"1", "true", "yes", "on"}


def parse_id_list(raw):
    """'3,4' -> [3, 4]; anything unparsable is dropped."""
    if not raw:
        return []
    ids = []
    for chunk in str(raw).split(","):
        chunk = chunk.strip()
        if chunk.isdigit():
            ids.append(int(chunk))
    return ids


class ScopedQuerysetMixin:
    """
    Limits a view's queryset to what the requester may see for
    ``permission_module`` and honours the narrowing query parameters
    ``employee_id`` (comma separated), ``department_id`` and ``recursive``.
    """

    permission_module = None
    visibility_action = "view"

    def get_hierarchy(self):
        return HierarchyIndex.for_request(self.request)

    def get_visibility(self):
        return resolve_visibility(
            get_requester(self.request),
            self.permission_module,
            self.visibility_action,
            hierarchy=self.get_hierarchy(),
        )

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params
        department_id = params.get("department_id")
        return apply_scope(
            queryset,
            self.get_visibility(),
            employee_ids=parse_id_list(params.get("employee_id")),
            department_id=int(department_id) if department_id and department_id.isdigit() else None,
            recursive=(params.get("recursive") or "").lower() in TRUE_VALUES,
            hierarchy=self.get_hierarchy(),
        )

    def get_requester_employee(self):
        from apps.hr.models import Employee

        requester = get_requester(self.request)
        if requester is None or requester.employee_id is None:
            return None
        return Employee.objects.filter(pk=requester.employee_id).first()
