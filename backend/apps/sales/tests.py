from rest_framework.test import APITestCase

from apps.audit.models import ActivityLog
from apps.projects.models import Project
from apps.sales.models import Lead, LeadAssignmentLog, LeadNote
from shared.testing import AccessFixtureMixin, make_department, make_employee, make_role

LEADS_URL = "/api/v1/leads/"


class LeadVisibilityTests(AccessFixtureMixin, APITestCase):
    """A business manager over two BDMs, each with four BDEs holding ten leads apiece."""

    @classmethod
    def setUpTestData(cls):
        cls.sales = make_department("SALES")
        team_role = {"leads": {"view": "team", "edit": "team", "create": "all", "assign": "all"}}
        cls.bm = make_employee(cls.sales, make_role("SALES_BM", team_role))
        bdm_role = make_role("SALES_BDM", team_role)
        bde_role = make_role("SALES_BDE", {"leads": {"view": "own", "edit": "own", "create": "all"}})
        cls.admin = make_employee(make_department("ADMIN"), make_role("ADMIN"))

        cls.bdms = [make_employee(cls.sales, bdm_role, manager=cls.bm) for _ in range(2)]
        cls.bdes = {
            bdm.pk: [make_employee(cls.sales, bde_role, manager=bdm) for _ in range(4)]
            for bdm in cls.bdms
        }
        leads = []
        for bdm in cls.bdms:
            for bde in cls.bdes[bdm.pk]:
                leads.extend(
                    Lead(name=f"Lead {bde.pk}-{n}", owner=bde, department=cls.sales) for n in range(10)
                )
        cls.outsider = make_employee(cls.sales, bde_role)
        leads.extend(Lead(name=f"Outside {n}", owner=cls.outsider, department=cls.sales) for n in range(5))
        Lead.objects.bulk_create(leads)

    def list_as(self, employee, query=""):
        self.client.force_authenticate(user=employee.user)
        response = self.client.get(LEADS_URL + query)
        self.assertEqual(response.status_code, 200)
        return response.data

    def test_manager_sees_whole_subtree(self):
        self.assertEqual(len(self.list_as(self.bm)), 80)

    def test_each_bdm_sees_their_four_bdes(self):
        for bdm in self.bdms:
            self.assertEqual(len(self.list_as(bdm)), 40)

    def test_each_bde_sees_only_their_own(self):
        for bde in self.bdes[self.bdms[0].pk] + self.bdes[self.bdms[1].pk]:
            rows = self.list_as(bde)
            self.assertEqual(len(rows), 10)
            self.assertEqual({row["owner"] for row in rows}, {bde.pk})

    def test_admin_sees_every_lead(self):
        self.assertEqual(len(self.list_as(self.admin)), 85)

    def test_bde_cannot_widen_with_filters(self):
        bde = self.bdes[self.bdms[0].pk][0]
        other = self.bdes[self.bdms[1].pk][0]

        rows = self.list_as(bde, f"?employee_id={other.pk}&department_id={self.sales.pk}")

        self.assertEqual({row["owner"] for row in rows}, {bde.pk})

    def test_manager_can_narrow_to_a_bdm_team(self):
        bdm = self.bdms[1]
        rows = self.list_as(self.bm, f"?employee_id={bdm.pk}&recursive=true")
        self.assertEqual(len(rows), 40)

    def test_reading_foreign_lead_is_not_found(self):
        lead = Lead.objects.filter(owner=self.outsider).first()
        self.client.force_authenticate(user=self.bm.user)
        self.assertEqual(self.client.get(f"{LEADS_URL}{lead.pk}/").status_code, 404)

    def test_reassignment_moves_visibility(self):
        old_owner = self.bdes[self.bdms[0].pk][0]
        new_owner = self.bdes[self.bdms[1].pk][0]
        lead = Lead.objects.filter(owner=old_owner).first()

        self.client.force_authenticate(user=self.bm.user)
        response = self.client.post(f"{LEADS_URL}{lead.pk}/assign/", {"assignee_id": new_owner.pk}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["owner"], new_owner.pk)
        self.assertEqual(len(self.list_as(old_owner)), 9)
        self.assertEqual(len(self.list_as(new_owner)), 11)
        self.assertEqual(len(self.list_as(self.bdms[0])), 39)
        self.assertEqual(len(self.list_as(self.bdms[1])), 41)
        self.assertEqual(len(self.list_as(self.bm)), 80)

        log = LeadAssignmentLog.objects.get(lead=lead)
        self.assertEqual((log.assigned_from_id, log.assigned_to_id, log.assigned_by_id), (old_owner.pk, new_owner.pk, self.bm.pk))
        self.assertTrue(ActivityLog.objects.filter(module="leads", action="assigned", entity_id=str(lead.pk)).exists())

    def test_bde_cannot_assign(self):
        bde = self.bdes[self.bdms[0].pk][0]
        lead = Lead.objects.filter(owner=bde).first()
        self.client.force_authenticate(user=bde.user)

        response = self.client.post(f"{LEADS_URL}{lead.pk}/assign/", {"assignee_id": self.outsider.pk}, format="json")

        self.assertEqual(response.status_code, 403)


class LeadWorkflowTests(AccessFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        sales = make_department("SALES")
        self.bm = make_employee(sales, make_role("SALES_BM", {"leads": {"view": "team", "edit": "team", "create": "all"}}))
        self.bde = make_employee(
            sales, make_role("SALES_BDE", {"leads": {"view": "own", "edit": "own", "create": "all"}}), manager=self.bm
        )
        self.peer = make_employee(sales, self.bde.role)

    def test_create_defaults_owner_and_department(self):
        self.client.force_authenticate(user=self.bde.user)
        response = self.client.post(LEADS_URL, {"name": "Acme", "company_name": "Acme Ltd"}, format="json")

        self.assertEqual(response.status_code, 201)
        lead = Lead.objects.get(pk=response.data["id"])
        self.assertEqual(lead.owner_id, self.bde.pk)
        self.assertEqual(lead.department_id, self.bde.department_id)

    def test_create_for_someone_else_needs_assign(self):
        self.client.force_authenticate(user=self.bde.user)
        response = self.client.post(LEADS_URL, {"name": "Acme", "owner": self.peer.pk}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_lost_without_reason_gets_default(self):
        lead = Lead.objects.create(name="Cold", owner=self.bde, department=self.bde.department)
        self.client.force_authenticate(user=self.bde.user)

        response = self.client.patch(f"{LEADS_URL}{lead.pk}/", {"status": "Lost"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["lost_reason"], "No reason provided")
        self.assertTrue(ActivityLog.objects.filter(action="status_changed", entity_id=str(lead.pk)).exists())

    def test_peer_cannot_edit(self):
        lead = Lead.objects.create(name="Mine", owner=self.bde, department=self.bde.department)
        self.client.force_authenticate(user=self.peer.user)
        response = self.client.patch(f"{LEADS_URL}{lead.pk}/", {"name": "Theirs"}, format="json")
        self.assertEqual(response.status_code, 404)

    def test_private_notes_only_for_author(self):
        lead = Lead.objects.create(name="Warm", owner=self.bde, department=self.bde.department)
        LeadNote.objects.create(lead=lead, author=self.bde, content="shared", is_private=False)
        LeadNote.objects.create(lead=lead, author=self.bde, content="secret", is_private=True)

        self.client.force_authenticate(user=self.bm.user)
        manager_view = self.client.get(f"{LEADS_URL}{lead.pk}/")
        self.client.force_authenticate(user=self.bde.user)
        author_view = self.client.get(f"{LEADS_URL}{lead.pk}/")

        self.assertEqual([note["content"] for note in manager_view.data["lead_notes"]], ["shared"])
        self.assertEqual(len(author_view.data["lead_notes"]), 2)

    def test_add_note(self):
        lead = Lead.objects.create(name="Warm", owner=self.bde, department=self.bde.department)
        self.client.force_authenticate(user=self.bm.user)

        response = self.client.post(f"{LEADS_URL}{lead.pk}/notes/", {"content": "Call back Monday"}, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(LeadNote.objects.get(lead=lead).author_id, self.bm.pk)

    def test_convert_won_lead_to_project(self):
        lead = Lead.objects.create(name="Deal", owner=self.bde, department=self.bde.department, status=Lead.Status.WON)
        self.client.force_authenticate(user=self.bde.user)

        response = self.client.post(f"{LEADS_URL}{lead.pk}/convert-to-project/", {}, format="json")
        again = self.client.post(f"{LEADS_URL}{lead.pk}/convert-to-project/", {}, format="json")

        self.assertEqual(response.status_code, 201)
        project = Project.objects.get(lead=lead)
        self.assertEqual(project.relationship_manager_id, self.bde.pk)
        self.assertEqual(again.status_code, 400)

    def test_convert_requires_won(self):
        lead = Lead.objects.create(name="Early", owner=self.bde, department=self.bde.department)
        self.client.force_authenticate(user=self.bde.user)
        response = self.client.post(f"{LEADS_URL}{lead.pk}/convert-to-project/", {}, format="json")
        self.assertEqual(response.status_code, 400)
