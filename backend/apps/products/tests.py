from rest_framework.test import APITestCase

from apps.products.models import Product
from shared.testing import AccessFixtureMixin, make_department, make_employee, make_role

PRODUCTS_URL = "/api/v1/products/"


class ProductAccessTests(AccessFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.product_dept = make_department("PRODUCT")
        self.sales = make_department("SALES")
        self.head = make_employee(self.product_dept, make_role("PROD_HEAD", {
            "products": {"view": "all", "create": "all", "edit": "all", "delete": "all"},
        }))
        self.manager = make_employee(self.product_dept, make_role("PROD_PM", {"products": {"view": "department"}}))
        self.owner = make_employee(self.sales, make_role("SALES_BDE", {"products": {"view": "own"}}))

        Product.objects.create(name="Website", product_manager=self.manager, department=self.product_dept)
        Product.objects.create(name="E-commerce", department=self.product_dept)
        Product.objects.create(name="Mobile App", product_manager=self.owner, department=self.sales)
        Product.objects.create(name="Legacy", department=self.product_dept, status=Product.Status.DISCONTINUED)

    def names(self, employee, query=""):
        self.client.force_authenticate(user=employee.user)
        response = self.client.get(PRODUCTS_URL + query)
        self.assertEqual(response.status_code, 200)
        return {row["name"] for row in response.data}

    def test_view_scopes(self):
        self.assertEqual(self.names(self.head), {"Website", "E-commerce", "Mobile App"})
        self.assertEqual(self.names(self.manager), {"Website", "E-commerce"})
        self.assertEqual(self.names(self.owner), {"Mobile App"})

    def test_discontinued_only_on_request(self):
        self.assertEqual(self.names(self.head, "?status=Discontinued"), {"Legacy"})

    def test_product_outside_scope_is_not_found(self):
        mobile = Product.objects.get(name="Mobile App")
        self.client.force_authenticate(user=self.manager.user)
        self.assertEqual(self.client.get(f"{PRODUCTS_URL}{mobile.pk}/").status_code, 404)

    def test_create_takes_department_from_product_manager(self):
        self.client.force_authenticate(user=self.head.user)
        response = self.client.post(
            PRODUCTS_URL, {"name": "CRM System", "category": "SaaS", "product_manager": self.owner.pk}, format="json"
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Product.objects.get(name="CRM System").department_id, self.sales.pk)

    def test_create_needs_capability(self):
        self.client.force_authenticate(user=self.manager.user)
        response = self.client.post(PRODUCTS_URL, {"name": "Dashboard"}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_negative_price_rejected(self):
        self.client.force_authenticate(user=self.head.user)
        response = self.client.post(PRODUCTS_URL, {"name": "Freebie", "price": "-1.00"}, format="json")
        self.assertEqual(response.status_code, 400)
