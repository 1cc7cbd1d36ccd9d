from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils.text import slugify
from ..managers import TenantManager


# ---------- Tenant / Business ----------
class Business(models.Model):

    """Tenant / Organization"""
    name = models.CharField(max_length=200)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two businesses can have the same slug
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "businesses"

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        # Derive a unique slug from name when not given
        if not self.slug:
            base = slugify(self.name)[:70] or "business"
            slug, n = base, 1
            while Business.objects.filter(slug=slug).exists():
                n += 1
                slug = f"{base}-{n}"
            self.slug = slug
        return super().save(*args, **kwargs)


ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_BOOKKEEPER = "bookkeeper"
ROLE_ACCOUNTANT = "accountant"
ROLE_MEMBER = "member"
ROLE_VIEWER = "viewer"

# Roles allowed to create/apply/void AP documents
WRITE_ROLES = frozenset(
    {ROLE_OWNER, ROLE_ADMIN, ROLE_BOOKKEEPER, ROLE_ACCOUNTANT})


# ---------- Membership ----------
class Membership(models.Model):  # Bridge table between User and Business

    ROLE_CHOICES = [
        (ROLE_OWNER, "Owner"),
        (ROLE_ADMIN, "Admin"),
        (ROLE_BOOKKEEPER, "Bookkeeper"),
        (ROLE_ACCOUNTANT, "Accountant"),
        (ROLE_MEMBER, "Member"),
        (ROLE_VIEWER, "Viewer"),  # read-only access
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    business = models.ForeignKey(
        Business, on_delete=models.CASCADE, related_name="memberships"
    )
    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=ROLE_VIEWER,  # safe, read-only
    )

    # Suspend someone's access without deleting the record
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # one user can only have one membership per business
        constraints = [
            models.UniqueConstraint(
                fields=["user", "business"], name="uq_user_business_membership"
            ),
        ]
        indexes = [
            models.Index(fields=["business", "user"], name="membership_business_user_idx"),
        ]

    def __str__(self):
        return f"{self.user} @ {self.business} ({self.role})"

    @property
    def can_write(self):
        return self.is_active and self.role in WRITE_ROLES

    def clean(self):
        if self.role not in dict(self.ROLE_CHOICES):
            raise ValidationError(f"Unknown role {self.role!r}")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
