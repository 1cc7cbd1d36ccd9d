from django.contrib import admin

from payables.models import Business, Membership
from payables.models.entitymembership import ROLE_ADMIN, ROLE_OWNER

from .mixins import TenantAdminMixin

# Roles allowed to manage who else can see a business
MANAGER_ROLES = (ROLE_OWNER, ROLE_ADMIN)


# Register `Business` model
@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    """a clean admin table for browsing businesses"""

    list_display = ("id", "name", "slug", "created_at")
    search_fields = ("name", "slug")
    ordering = ("name",)
    prepopulated_fields = {"slug": ("name",)}

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.is_superuser:
            return qs
        # non-superusers only see businesses they belong to
        return qs.filter(
            memberships__user=request.user, memberships__is_active=True
        ).distinct()


# Register `Membership` model
@admin.register(Membership)
class MembershipAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("user", "business", "role", "is_active", "created_at")
    list_filter = ("role", "is_active", "business")
    search_fields = ("user__username", "user__email", "business__name")
    readonly_fields = ("created_at",)  # prevent tampering with creation date
    ordering = ("business__name", "user__username")

    def get_queryset(self, request):
        # TenantAdminMixin applies isolation
        return super().get_queryset(request).select_related("business", "user")

    def _managed_business_ids(self, request):
        return set(
            request.user.memberships.filter(
                role__in=MANAGER_ROLES, is_active=True
            ).values_list("business_id", flat=True)
        )

    # Only owners/admins of a business may edit its memberships
    def has_change_permission(self, request, obj=None):
        if request.user.is_superuser:
            return True
        managed = self._managed_business_ids(request)
        if obj is None:
            # change list: allowed when the user manages at least one business
            return bool(managed)
        return obj.business_id in managed

    def has_delete_permission(self, request, obj=None):
        return self.has_change_permission(request, obj)

    def has_add_permission(self, request):
        if request.user.is_superuser:
            return True
        return bool(self._managed_business_ids(request))
