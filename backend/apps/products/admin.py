from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "status", "product_manager", "department")
    list_filter = ("status", "category", "department")
    search_fields = ("name", "description")
    raw_id_fields = ("product_manager",)
