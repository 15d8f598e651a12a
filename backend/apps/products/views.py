from rest_framework import permissions, viewsets

from apps.audit.utils import log_activity
from apps.security.mixins import ScopedQuerysetMixin
from apps.security.permissions import HasModulePermission

from .models import Product
from .serializers import ProductSerializer


class ProductViewSet(ScopedQuerysetMixin, viewsets.ModelViewSet):
    """
    Product catalogue. Discontinued products are hidden from the list unless
    asked for with ``?status=Discontinued``.
    """

    queryset = Product.objects.select_related("product_manager", "department")
    serializer_class = ProductSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = "products"
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_queryset(self):
        qs = super().get_queryset()
        product_status = self.request.query_params.get("status")
        if product_status:
            qs = qs.filter(status=product_status)
        elif self.action == "list":
            qs = qs.exclude(status=Product.Status.DISCONTINUED)
        category = self.request.query_params.get("category")
        if category:
            qs = qs.filter(category=category)
        return qs

    def perform_create(self, serializer):
        data = serializer.validated_data
        department = data.get("department")
        if department is None:
            manager = data.get("product_manager") or self.get_requester_employee()
            department = getattr(manager, "department", None)
        product = serializer.save(department=department)
        log_activity(self.request, "products", "created", entity=product, description=f"Product created: {product.name}")

    def perform_update(self, serializer):
        product = serializer.save()
        log_activity(self.request, "products", "updated", entity=product)

    def perform_destroy(self, instance):
        log_activity(self.request, "products", "deleted", entity=instance, description=f"Product deleted: {instance.name}")
        instance.delete()
