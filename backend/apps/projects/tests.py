from rest_framework.test import APITestCase

from apps.projects.models import Project
from apps.sales.models import Lead
from apps.tasks.models import Task
from shared.testing import AccessFixtureMixin, make_department, make_employee, make_role

PROJECTS_URL = "/api/v1/projects/"


class ProjectAccessTests(AccessFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.project_dept = make_department("PROJECT")
        self.sales = make_department("SALES")
        self.head = make_employee(self.project_dept, make_role("PROJ_HEAD", {
            "projects": {"view": "department", "edit": "department", "create": "all", "delete": "all"},
            "leads": {"view": "own"},
        }))
        developer_role = make_role("PROJ_DEV", {"projects": {"view": "assigned"}})
        self.developer = make_employee(self.project_dept, developer_role, manager=self.head)
        self.seller = make_employee(self.sales, developer_role)

        self.named = Project.objects.create(name="Portal", project_manager=self.developer, department=self.project_dept)
        self.other = Project.objects.create(name="Intranet", department=self.project_dept)
        self.sales_project = Project.objects.create(name="CRM", relationship_manager=self.seller, department=self.sales)

    def names(self, employee):
        self.client.force_authenticate(user=employee.user)
        response = self.client.get(PROJECTS_URL)
        self.assertEqual(response.status_code, 200)
        return {row["name"] for row in response.data}

    def test_assigned_scope_lists_named_projects(self):
        self.assertEqual(self.names(self.developer), {"Portal"})
        self.assertEqual(self.names(self.seller), {"CRM"})

    def test_department_scope(self):
        self.assertEqual(self.names(self.head), {"Portal", "Intranet"})

    def test_developer_cannot_edit(self):
        self.client.force_authenticate(user=self.developer.user)
        response = self.client.patch(f"{PROJECTS_URL}{self.named.pk}/", {"name": "Renamed"}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_create_defaults_department(self):
        self.client.force_authenticate(user=self.head.user)
        response = self.client.post(PROJECTS_URL, {"name": "Migration"}, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Project.objects.get(pk=response.data["id"]).department_id, self.project_dept.pk)

    def test_end_date_after_start(self):
        self.client.force_authenticate(user=self.head.user)
        response = self.client.post(
            PROJECTS_URL, {"name": "Backwards", "start_date": "2026-05-01", "end_date": "2026-04-01"}, format="json"
        )
        self.assertEqual(response.status_code, 400)

    def test_task_count(self):
        Task.objects.create(title="Kickoff", project=self.named, assignee=self.developer)
        self.client.force_authenticate(user=self.developer.user)
        response = self.client.get(f"{PROJECTS_URL}{self.named.pk}/")
        self.assertEqual(response.data["task_count"], 1)

    def test_linking_a_lead_outside_lead_scope_is_forbidden(self):
        lead = Lead.objects.create(name="Secret deal", owner=self.seller, department=self.sales)
        self.client.force_authenticate(user=self.head.user)

        response = self.client.post(PROJECTS_URL, {"name": "Claimed", "lead": lead.pk}, format="json")
        patched = self.client.patch(f"{PROJECTS_URL}{self.other.pk}/", {"lead": lead.pk}, format="json")

        self.assertEqual(response.status_code, 403)
        self.assertNotIn("Secret deal", str(response.data))
        self.assertEqual(patched.status_code, 403)
        self.assertFalse(Project.objects.filter(lead=lead).exists())

    def test_linking_a_visible_lead(self):
        lead = Lead.objects.create(name="Own deal", owner=self.head, department=self.project_dept)
        self.client.force_authenticate(user=self.head.user)

        response = self.client.post(PROJECTS_URL, {"name": "Delivery", "lead": lead.pk}, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["lead_name"], "Own deal")

    def test_cannot_move_project_out_of_edit_scope(self):
        self.client.force_authenticate(user=self.head.user)

        moved = self.client.patch(f"{PROJECTS_URL}{self.other.pk}/", {"department": self.sales.pk}, format="json")
        handed_over = self.client.patch(
            f"{PROJECTS_URL}{self.other.pk}/", {"project_manager": self.developer.pk}, format="json"
        )

        self.assertEqual(moved.status_code, 403)
        self.other.refresh_from_db()
        self.assertEqual(self.other.department_id, self.project_dept.pk)
        self.assertEqual(handed_over.status_code, 200)
