from payables.models import Business


class TenantAdminMixin:
    """
    Enforce tenant isolation in Django admin.
    Staff users see rows of the businesses they hold an active membership in;
    superusers see everything.
    """

    def _get_request_businesses(self, request):
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            return Business.objects.none()
        return Business.objects.filter(
            memberships__user=user, memberships__is_active=True
        )

    def get_queryset(self, request):
        qs = super().get_queryset(request)

        # If superuser, show everything;
        # otherwise restrict to the user's businesses
        if request.user.is_superuser:
            return qs
        return qs.filter(business__in=self._get_request_businesses(request))

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        """
        Restrict foreignkey dropdowns to the user's businesses:
        the business field itself, and vendor/account/category fields
        that are business-scoped.
        """
        if not request.user.is_superuser:
            businesses = self._get_request_businesses(request)
            rel_model = getattr(db_field, "related_model", None)
            if rel_model is Business:
                kwargs["queryset"] = businesses
            elif rel_model is not None and any(
                f.name == "business" for f in rel_model._meta.fields
            ):
                kwargs["queryset"] = rel_model.objects.filter(business__in=businesses)

        return super().formfield_for_foreignkey(db_field, request, **kwargs)
