from django.contrib import admin

from payables.models import Account, Category

from .mixins import TenantAdminMixin


# Register `Account` model
@admin.register(Account)
class AccountAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "business", "name", "created_at")
    list_filter = ("business",)
    search_fields = ("name",)
    # accounts grouped by business, then sorted by name
    ordering = ("business", "name")

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("business")


# Register `Category` model
@admin.register(Category)
class CategoryAdmin(TenantAdminMixin, admin.ModelAdmin):
    """admin users can quickly see categories per business"""

    list_display = ("id", "name", "business", "archived_at")
    list_filter = ("business",)  # Add sidebar filter
    search_fields = ("name",)

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("business")
