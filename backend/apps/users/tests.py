from rest_framework.test import APITestCase

from shared.testing import AccessFixtureMixin, make_department, make_employee, make_role


class CurrentUserApiTests(AccessFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.sales = make_department("SALES", "Sales Department")
        self.role = make_role("SALES_BDE", {"leads": {"view": "own", "edit": "own"}, "tasks": {"view": "own"}})
        self.employee = make_employee(self.sales, self.role, first_name="Rina", last_name="Das")

    def test_me_returns_employee_and_scopes(self):
        self.client.force_authenticate(user=self.employee.user)
        response = self.client.get("/api/v1/users/me/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["username"], self.employee.user.username)
        self.assertEqual(response.data["employee"]["full_name"], "Rina Das")
        self.assertEqual(response.data["employee"]["role"], "SALES_BDE")
        self.assertEqual(response.data["employee"]["department_name"], "Sales Department")
        self.assertFalse(response.data["is_super_admin"])
        self.assertEqual(
            response.data["effective_permissions"],
            {"leads": {"edit": "own", "view": "own"}, "tasks": {"view": "own"}},
        )

    def test_admin_holds_everything(self):
        admin = make_employee(self.sales, make_role("ADMIN"))
        self.client.force_authenticate(user=admin.user)

        response = self.client.get("/api/v1/users/me/")

        self.assertTrue(response.data["is_super_admin"])
        self.assertEqual(response.data["effective_permissions"]["leads"]["view"], "all")

    def test_unassigned_has_no_scopes(self):
        pending = make_employee(self.sales, make_role("UNASSIGNED"))
        self.client.force_authenticate(user=pending.user)
        response = self.client.get("/api/v1/users/me/")
        self.assertEqual(response.data["effective_permissions"], {})

    def test_update_profile(self):
        self.client.force_authenticate(user=self.employee.user)
        response = self.client.patch("/api/v1/users/me/", {"phone": "0123"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.employee.user.refresh_from_db()
        self.assertEqual(self.employee.user.phone, "0123")

    def test_change_password(self):
        self.client.force_authenticate(user=self.employee.user)

        wrong = self.client.post(
            "/api/v1/users/change-password/",
            {"old_password": "nope", "new_password": "An0ther-long-pass"},
            format="json",
        )
        right = self.client.post(
            "/api/v1/users/change-password/",
            {"old_password": "test-pass-123", "new_password": "An0ther-long-pass"},
            format="json",
        )

        self.assertEqual(wrong.status_code, 400)
        self.assertEqual(right.status_code, 200)
        self.employee.user.refresh_from_db()
        self.assertTrue(self.employee.user.check_password("An0ther-long-pass"))

    def test_requires_login(self):
        self.assertEqual(self.client.get("/api/v1/users/me/").status_code, 401)
