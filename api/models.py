import random
import re
import uuid

from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password
from django.core.validators import RegexValidator
from django.db import models, transaction
from django.utils import timezone
from django.utils.text import slugify


# ============================================
# Shared defaults
# ============================================
def default_website_content():
    return {
        "pages": [
            {"id": "home", "name": "Home", "slug": "home", "isHome": True, "elements": []}
        ]
    }


def default_website_settings():
    return {
        "colors": {
            "primary": "#3B82F6",
            "secondary": "#1E293B",
            "accent": "#06B6D4",
            "background": "#F8FAFC",
            "text": "#0F172A",
        },
        "fonts": {
            "heading": "Inter",
            "body": "Inter",
        },
        "globalStyles": {
            "borderRadius": "0.5rem",
            "buttonStyle": "rounded",
        },
    }


DOMAIN_NAME_REGEX = re.compile(r"^([a-z0-9]+(-[a-z0-9]+)*\.)+[a-z]{2,}$", re.IGNORECASE)

validate_domain_name = RegexValidator(
    regex=DOMAIN_NAME_REGEX,
    message="Invalid domain name format",
)


# ============================================
# App user
# ============================================
class UserRole(models.TextChoices):
    USER = 'user', 'User'
    ADMIN = 'admin', 'Admin'


class UserStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    ACTIVE = 'active', 'Active'
    SUSPENDED = 'suspended', 'Suspended'


class PlanType(models.TextChoices):
    FREE = 'free', 'Free'
    PRO = 'pro', 'Pro'
    ENTERPRISE = 'enterprise', 'Enterprise'


class AppUser(models.Model):
    """
    Account that signs in to the builder through the JWT endpoints.
    Kept apart from django.contrib.auth's User, which only serves the admin site.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    password = models.CharField(max_length=128)
    role = models.CharField(max_length=10, choices=UserRole.choices, default=UserRole.USER)
    status = models.CharField(
        max_length=20,
        choices=UserStatus.choices,
        default=UserStatus.PENDING,
        db_index=True
    )
    subscription_tier = models.CharField(
        max_length=20,
        choices=PlanType.choices,
        default=PlanType.FREE
    )
    email_verified = models.BooleanField(default=False)
    verification_token = models.CharField(max_length=128, null=True, blank=True, db_index=True)
    reset_password_token = models.CharField(max_length=128, null=True, blank=True, db_index=True)
    reset_password_expires = models.DateTimeField(null=True, blank=True)
    refresh_token = models.TextField(null=True, blank=True)
    last_login = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.full_name} <{self.email}>"

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    def set_password(self, raw_password):
        self.password = make_password(raw_password)

    def check_password(self, raw_password):
        return check_password(raw_password, self.password)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    @property
    def is_authenticated(self):
        """
        Required by DRF's IsAuthenticated permission class.
        """
        return True

    @property
    def is_anonymous(self):
        return False

    def get_plan(self):
        return PlanModel.objects.filter(plan_type=self.subscription_tier).first()


# ============================================
# Plan model
# ============================================
class PlanModel(models.Model):
    plan_type = models.CharField(
        max_length=20,
        choices=PlanType.choices,
        unique=True,
    )
    name = models.CharField(max_length=50)
    description = models.TextField(blank=True)
    monthly_price = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    website_limit = models.PositiveIntegerField(null=True, blank=True, help_text="Empty means unlimited")
    custom_domains = models.BooleanField(default=False)
    features = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ['monthly_price']

    def __str__(self):
        return self.plan_type

    def allows_more_websites(self, current_count):
        return self.website_limit is None or current_count < self.website_limit


# ============================================
# Subscription model - Ties a user to a plan
# ============================================
class PaymentType(models.TextChoices):
    UNPAID = 'unpaid', 'Unpaid'
    PAID = 'paid', 'Paid'


class Subscription(models.Model):
    user = models.OneToOneField(AppUser, on_delete=models.CASCADE, related_name='subscription')
    plan = models.ForeignKey(PlanModel, on_delete=models.PROTECT)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentType.choices,
        default=PaymentType.UNPAID,
    )
    subscription_expiry = models.DateField(null=True, blank=True)
    is_paid = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.email} -> {self.plan.plan_type}"

    def is_active(self):
        return bool(
            self.is_paid
            and self.subscription_expiry
            and self.subscription_expiry >= timezone.now().date()
        )


# ============================================
# Template model
# ============================================
class Template(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=50, default='general', db_index=True)
    thumbnail = models.CharField(max_length=500, blank=True)
    content = models.JSONField(default=default_website_content)
    styles = models.TextField(blank=True)
    settings = models.JSONField(default=default_website_settings)
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.category})"


# ============================================
# Website model (a user's project)
# ============================================
class WebsiteStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    PUBLISHED = 'published', 'Published'
    ARCHIVED = 'archived', 'Archived'


def build_website_slug(name):
    base = re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-") or "site"
    return f"{base[:40]}-{random.randint(1000, 9999)}"


class Website(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(AppUser, on_delete=models.CASCADE, related_name='websites')
    template = models.ForeignKey(
        Template,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='websites'
    )
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    slug = models.SlugField(max_length=60, unique=True, editable=False)
    status = models.CharField(
        max_length=20,
        choices=WebsiteStatus.choices,
        default=WebsiteStatus.DRAFT,
        db_index=True
    )
    content = models.JSONField(default=default_website_content)
    styles = models.TextField(blank=True)
    settings = models.JSONField(default=default_website_settings)
    public_url = models.URLField(max_length=300, null=True, blank=True)
    custom_domain = models.CharField(max_length=255, null=True, blank=True)
    webhook_url = models.URLField(max_length=500, null=True, blank=True)
    last_published_at = models.DateTimeField(null=True, blank=True)
    last_deployed_at = models.DateTimeField(null=True, blank=True)
    last_successful_deployment = models.ForeignKey(
        'Deployment',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at']

    def __str__(self):
        return f"{self.name} ({self.slug})"

    def save(self, *args, **kwargs):
        if not self.slug:
            with transaction.atomic():
                slug = build_website_slug(self.name)
                while Website.objects.filter(slug=slug).exists():
                    slug = build_website_slug(self.name)
                self.slug = slug

        super().save(*args, **kwargs)

    @property
    def default_url(self):
        return f"https://{self.slug}.{settings.SITE_DOMAIN_SUFFIX}"

    def apply_template(self, template):
        """Copies a template's content, styles and settings onto this website."""
        self.template = template
        self.content = template.content
        self.styles = template.styles
        self.settings = template.settings


# ============================================
# Domain model
# ============================================
class DomainStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    ACTIVE = 'active', 'Active'
    ERROR = 'error', 'Error'


class VerificationStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    VERIFIED = 'verified', 'Verified'
    FAILED = 'failed', 'Failed'


class Domain(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    website = models.ForeignKey(Website, on_delete=models.CASCADE, related_name='domains')
    user = models.ForeignKey(AppUser, on_delete=models.CASCADE, related_name='domains')
    name = models.CharField(max_length=255, unique=True, validators=[validate_domain_name])
    status = models.CharField(
        max_length=20,
        choices=DomainStatus.choices,
        default=DomainStatus.PENDING,
        db_index=True
    )
    verification_status = models.CharField(
        max_length=20,
        choices=VerificationStatus.choices,
        default=VerificationStatus.PENDING,
        db_index=True
    )
    verification_errors = models.TextField(null=True, blank=True)
    is_primary = models.BooleanField(default=False)
    dns_records = models.JSONField(default=list, blank=True)
    last_verified_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-is_primary', '-created_at']
        indexes = [
            models.Index(fields=['website', 'is_primary'], name='api_domain_site_primary_idx'),
        ]

    def __str__(self):
        return f"{self.name} | {self.status} | {self.verification_status}"

    def save(self, *args, **kwargs):
        if self.name:
            self.name = self.name.strip().lower()
        super().save(*args, **kwargs)

    @property
    def is_apex(self):
        return len(self.name.split('.')) == 2


# ============================================
# Deployment model
# ============================================
class DeploymentStatus(models.TextChoices):
    QUEUED = 'queued', 'Queued'
    IN_PROGRESS = 'in_progress', 'In progress'
    SUCCESS = 'success', 'Success'
    FAILED = 'failed', 'Failed'
    CANCELED = 'canceled', 'Canceled'


ACTIVE_DEPLOYMENT_STATUSES = (DeploymentStatus.QUEUED, DeploymentStatus.IN_PROGRESS)
FINISHED_DEPLOYMENT_STATUSES = (DeploymentStatus.SUCCESS, DeploymentStatus.FAILED, DeploymentStatus.CANCELED)


class Deployment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    website = models.ForeignKey(Website, on_delete=models.CASCADE, related_name='deployments')
    user = models.ForeignKey(AppUser, on_delete=models.CASCADE, related_name='deployments')
    status = models.CharField(
        max_length=20,
        choices=DeploymentStatus.choices,
        default=DeploymentStatus.QUEUED,
        db_index=True
    )
    version = models.CharField(max_length=20)
    commit_message = models.CharField(max_length=255, default="User initiated deployment")
    build_time = models.PositiveIntegerField(null=True, blank=True, help_text="Milliseconds")
    completed_at = models.DateTimeField(null=True, blank=True)
    deployment_url = models.URLField(max_length=300, null=True, blank=True)
    build_logs = models.TextField(blank=True, default="")
    error_message = models.TextField(null=True, blank=True)
    error_category = models.CharField(max_length=50, null=True, blank=True)
    attempts = models.PositiveSmallIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.website.name} v{self.version} ({self.status})"

    @property
    def is_active(self):
        return self.status in ACTIVE_DEPLOYMENT_STATUSES

    def append_log(self, line):
        stamp = timezone.now().strftime("%H:%M:%S")
        self.build_logs = f"{self.build_logs}[{stamp}] {line}\n"


# ============================================
# Image model
# ============================================
class ImageSource(models.TextChoices):
    UPLOAD = 'upload', 'Upload'
    UNSPLASH = 'unsplash', 'Unsplash'


def image_upload_path(instance, filename):
    return f"uploads/{instance.user_id}/{filename}"


class Image(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(AppUser, on_delete=models.CASCADE, related_name='images')
    file_name = models.CharField(max_length=100)
    original_name = models.CharField(max_length=255)
    file = models.FileField(upload_to=image_upload_path, max_length=300)
    file_size = models.PositiveIntegerField(default=0)
    mime_type = models.CharField(max_length=100)
    source = models.CharField(max_length=20, choices=ImageSource.choices, default=ImageSource.UPLOAD)
    external_id = models.CharField(max_length=100, null=True, blank=True)
    attribution = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.original_name} ({self.user_id})"


# ============================================
# Content library
# ============================================
class ContentType(models.TextChoices):
    TEMPLATE = 'template', 'Template'
    PAGE = 'page', 'Page'
    SECTION = 'section', 'Section'
    COMPONENT = 'component', 'Component'


class ContentStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    PUBLISHED = 'published', 'Published'
    ARCHIVED = 'archived', 'Archived'


class Content(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(AppUser, on_delete=models.CASCADE, related_name='contents')
    website = models.ForeignKey(
        Website,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='contents'
    )
    parent = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='children'
    )
    title = models.CharField(max_length=200)
    description = models.TextField(null=True, blank=True)
    type = models.CharField(max_length=20, choices=ContentType.choices, default=ContentType.PAGE)
    content = models.JSONField(default=dict, blank=True)
    config = models.JSONField(default=dict, blank=True)
    status = models.CharField(
        max_length=20,
        choices=ContentStatus.choices,
        default=ContentStatus.DRAFT,
        db_index=True
    )
    tags = models.JSONField(default=list, blank=True)
    preview = models.CharField(max_length=500, null=True, blank=True)
    slug = models.SlugField(max_length=220, unique=True, editable=False)
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at']

    def __str__(self):
        return f"{self.title} [{self.type}]"

    def save(self, *args, **kwargs):
        if not self.slug:
            base_slug = slugify(self.title)[:200] or "content"  # Leave space for suffix
            slug = base_slug

            with transaction.atomic():
                i = 1
                while Content.objects.filter(slug=slug).exists():
                    slug = f"{base_slug}-{i}"
                    i += 1
                self.slug = slug

        if self.status == ContentStatus.PUBLISHED and not self.published_at:
            self.published_at = timezone.now()

        super().save(*args, **kwargs)
