# backend/apps/products/permissions.py

from apps.security.permission_registry import register_permissions
from apps.security.services.query_scoping import register_scope_fields

from .models import Product

PRODUCTS_PERMISSIONS = [
    {"module": "products", "action": "view", "scopes": ["own", "department", "all"], "description": "View products"},
    {"module": "products", "action": "create", "scopes": ["all"], "description": "Create products"},
    {"module": "products", "action": "edit", "scopes": ["all"], "description": "Edit products"},
    {"module": "products", "action": "delete", "scopes": ["all"], "description": "Delete products"},
]

register_permissions(PRODUCTS_PERMISSIONS)

# "Own" means the products an employee manages.
register_scope_fields(Product, owner_fields=["product_manager"], department_fields=["department"])
