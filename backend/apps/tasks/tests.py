from rest_framework.test import APITestCase

from apps.sales.models import Lead
from apps.tasks.models import Task, TaskStatus
from shared.testing import AccessFixtureMixin, make_department, make_employee, make_role

TASKS_URL = "/api/v1/tasks/"


class TaskAccessTests(AccessFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        sales = make_department("SALES")
        self.manager = make_employee(sales, make_role("SALES_BM", {
            "tasks": {"view": "team", "edit": "team", "create": "all", "assign": "all"},
            "leads": {"view": "team"},
        }))
        worker_role = make_role("SALES_BDE", {
            "tasks": {"view": "own", "edit": "own", "create": "all"},
            "leads": {"view": "own"},
        })
        self.worker = make_employee(sales, worker_role, manager=self.manager)
        self.peer = make_employee(sales, worker_role)

    def test_task_is_visible_to_assignee_and_creator(self):
        Task.objects.create(title="Prepare deck", assignee=self.worker, creator=self.peer)

        for employee in (self.worker, self.peer, self.manager):
            self.client.force_authenticate(user=employee.user)
            self.assertEqual(len(self.client.get(TASKS_URL).data), 1)

    def test_create_for_self(self):
        self.client.force_authenticate(user=self.worker.user)
        response = self.client.post(TASKS_URL, {"title": "Call client"}, format="json")

        self.assertEqual(response.status_code, 201)
        task = Task.objects.get(pk=response.data["id"])
        self.assertEqual((task.assignee_id, task.creator_id), (self.worker.pk, self.worker.pk))

    def test_assigning_to_someone_else_needs_assign(self):
        self.client.force_authenticate(user=self.worker.user)
        denied = self.client.post(TASKS_URL, {"title": "Do this", "assignee": self.peer.pk}, format="json")
        self.assertEqual(denied.status_code, 403)

        self.client.force_authenticate(user=self.manager.user)
        allowed = self.client.post(TASKS_URL, {"title": "Do this", "assignee": self.worker.pk}, format="json")
        self.assertEqual(allowed.status_code, 201)

    def test_linked_lead_must_be_visible(self):
        foreign_lead = Lead.objects.create(name="Not yours", owner=self.peer, department=self.peer.department)
        self.client.force_authenticate(user=self.worker.user)

        response = self.client.post(TASKS_URL, {"title": "Follow up", "lead": foreign_lead.pk}, format="json")

        self.assertEqual(response.status_code, 403)
        self.assertFalse(Task.objects.exists())

    def test_mine_lists_assigned_tasks(self):
        Task.objects.create(title="Mine", assignee=self.worker, creator=self.manager)
        Task.objects.create(title="Created by me", assignee=self.manager, creator=self.worker)
        self.client.force_authenticate(user=self.worker.user)

        response = self.client.get(f"{TASKS_URL}mine/")

        self.assertEqual([row["title"] for row in response.data], ["Mine"])

    def test_completing_sets_completed_at(self):
        task = Task.objects.create(title="Finish", assignee=self.worker, creator=self.manager)
        self.client.force_authenticate(user=self.worker.user)

        response = self.client.post(f"{TASKS_URL}{task.pk}/status/", {"status": TaskStatus.COMPLETED}, format="json")

        self.assertEqual(response.status_code, 200)
        task.refresh_from_db()
        self.assertIsNotNone(task.completed_at)

    def test_peer_cannot_update_status(self):
        task = Task.objects.create(title="Finish", assignee=self.worker, creator=self.manager)
        self.client.force_authenticate(user=self.peer.user)
        response = self.client.post(f"{TASKS_URL}{task.pk}/status/", {"status": TaskStatus.COMPLETED}, format="json")
        self.assertEqual(response.status_code, 404)

    def test_manager_reassigns(self):
        task = Task.objects.create(title="Handoff", assignee=self.worker, creator=self.manager)
        self.client.force_authenticate(user=self.manager.user)

        response = self.client.post(f"{TASKS_URL}{task.pk}/assign/", {"assignee_id": self.peer.pk}, format="json")

        self.assertEqual(response.status_code, 200)
        task.refresh_from_db()
        self.assertEqual(task.assignee_id, self.peer.pk)

    def test_filter_by_lead(self):
        lead = Lead.objects.create(name="Acme", owner=self.worker, department=self.worker.department)
        Task.objects.create(title="Linked", assignee=self.worker, creator=self.worker, lead=lead)
        Task.objects.create(title="Loose", assignee=self.worker, creator=self.worker)
        self.client.force_authenticate(user=self.worker.user)

        response = self.client.get(f"{TASKS_URL}?lead={lead.pk}")

        self.assertEqual([row["title"] for row in response.data], ["Linked"])

    def test_non_numeric_link_filter_is_rejected(self):
        self.client.force_authenticate(user=self.worker.user)

        self.assertEqual(self.client.get(f"{TASKS_URL}?lead=abc").status_code, 400)
        self.assertEqual(self.client.get(f"{TASKS_URL}?project=1;drop").status_code, 400)
