import re

from rest_framework import serializers

from .management.validators import validate_website_content
from .models import (
    AppUser, PlanModel, Subscription, Template, Website, Domain, Deployment,
    Image, Content, PlanType, DOMAIN_NAME_REGEX,
)
from .permissions import is_admin


def validate_password_strength(value):
    """At least 8 characters, one digit and one uppercase letter."""
    if len(value) < 8:
        raise serializers.ValidationError("Password must be at least 8 characters long.")
    if not re.search(r"\d", value):
        raise serializers.ValidationError("Password must contain at least one number.")
    if not re.search(r"[A-Z]", value):
        raise serializers.ValidationError("Password must contain at least one uppercase letter.")
    return value


# ============================================
# Plans and subscriptions
# ============================================
class PlanModelSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlanModel
        fields = ["plan_type", "name", "description", "monthly_price", "website_limit", "custom_domains", "features"]


class SubscriptionSerializer(serializers.ModelSerializer):
    plan = PlanModelSerializer(read_only=True)  # Nested plan info
    active = serializers.SerializerMethodField()

    class Meta:
        model = Subscription
        fields = ["payment_status", "subscription_expiry", "is_paid", "active", "plan", "created_at", "updated_at"]

    def get_active(self, obj):
        return obj.is_active()


class SubscribeSerializer(serializers.Serializer):
    planType = serializers.ChoiceField(choices=PlanType.choices)


# ============================================
# App User Serializers
# ============================================
class AppUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = AppUser
        fields = [
            "id",
            "email",
            "first_name",
            "last_name",
            "role",
            "status",
            "subscription_tier",
            "email_verified",
            "last_login",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id", "email", "role", "status", "subscription_tier",
            "email_verified", "last_login", "created_at", "updated_at",
        ]


class AdminUserUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = AppUser
        fields = ["first_name", "last_name", "role", "status", "subscription_tier"]


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)

    def validate_email(self, value):
        value = value.strip().lower()
        if AppUser.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("An account with this email already exists.")
        return value

    def validate_password(self, value):
        return validate_password_strength(value)

    def create(self, validated_data):
        password = validated_data.pop("password")
        user = AppUser(**validated_data)
        user.set_password(password)
        user.save()
        return user


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class RefreshTokenSerializer(serializers.Serializer):
    refreshToken = serializers.CharField()


class EmailSerializer(serializers.Serializer):
    email = serializers.EmailField()


class ChangePasswordSerializer(serializers.Serializer):
    currentPassword = serializers.CharField(write_only=True)
    newPassword = serializers.CharField(write_only=True)

    def validate_newPassword(self, value):
        return validate_password_strength(value)


class ResetPasswordSerializer(serializers.Serializer):
    token = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate_password(self, value):
        return validate_password_strength(value)


# ============================================
# Template Serializer
# ============================================
class TemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Template
        fields = [
            "id", "name", "description", "category", "thumbnail",
            "content", "styles", "settings", "is_default",
            "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_content(self, value):
        try:
            validate_website_content(value)
        except ValueError as e:
            raise serializers.ValidationError(str(e))
        return value


class TemplateListSerializer(serializers.ModelSerializer):
    # Content is left out of the list view
    class Meta:
        model = Template
        fields = ["id", "name", "description", "category", "thumbnail", "is_default", "created_at"]


# ============================================
# Website Serializers
# ============================================
class WebsiteSerializer(serializers.ModelSerializer):
    templateId = serializers.PrimaryKeyRelatedField(
        source="template",
        queryset=Template.objects.all(),
        required=False,
        allow_null=True,
    )
    customDomain = serializers.CharField(
        source="custom_domain",
        required=False,
        allow_null=True,
        allow_blank=True,
        max_length=255,
    )
    webhookUrl = serializers.URLField(source="webhook_url", required=False, allow_null=True, max_length=500)
    defaultUrl = serializers.CharField(source="default_url", read_only=True)

    class Meta:
        model = Website
        fields = [
            "id", "name", "description", "slug", "status",
            "templateId", "content", "styles", "settings",
            "customDomain", "webhookUrl", "public_url", "defaultUrl",
            "last_published_at", "last_deployed_at",
            "created_at", "updated_at",
        ]
        read_only_fields = [
            "id", "slug", "public_url",
            "last_published_at", "last_deployed_at",
            "created_at", "updated_at",
        ]

    def validate_content(self, value):
        try:
            validate_website_content(value)
        except ValueError as e:
            raise serializers.ValidationError(str(e))
        return value

    def validate_customDomain(self, value):
        if value and not DOMAIN_NAME_REGEX.match(value):
            raise serializers.ValidationError("Invalid domain name format")
        return value.lower() if value else value

    def create(self, validated_data):
        template = validated_data.get("template")
        website = Website(**validated_data)

        # Template content is copied so later template edits never leak into the site
        if template is not None:
            website.apply_template(template)
            for field in ("content", "styles", "settings"):
                if field in validated_data:
                    setattr(website, field, validated_data[field])

        website.save()
        return website


class WebsiteListSerializer(serializers.ModelSerializer):
    templateId = serializers.UUIDField(source="template_id", read_only=True)

    class Meta:
        model = Website
        fields = [
            "id", "name", "description", "slug", "status", "templateId",
            "public_url", "custom_domain", "last_published_at", "created_at", "updated_at",
        ]


class AdminWebsiteSerializer(WebsiteListSerializer):
    owner = serializers.EmailField(source="user.email", read_only=True)

    class Meta(WebsiteListSerializer.Meta):
        fields = WebsiteListSerializer.Meta.fields + ["owner"]


# ============================================
# Deployment Serializers
# ============================================
class DeploymentSerializer(serializers.ModelSerializer):
    websiteId = serializers.UUIDField(source="website_id", read_only=True)
    commitMessage = serializers.CharField(source="commit_message", read_only=True)
    buildTime = serializers.IntegerField(source="build_time", read_only=True)
    completedAt = serializers.DateTimeField(source="completed_at", read_only=True)
    deploymentUrl = serializers.URLField(source="deployment_url", read_only=True)
    buildLogs = serializers.CharField(source="build_logs", read_only=True)
    errorMessage = serializers.CharField(source="error_message", read_only=True)
    errorCategory = serializers.CharField(source="error_category", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Deployment
        fields = [
            "id", "websiteId", "status", "version", "commitMessage",
            "buildTime", "completedAt", "deploymentUrl", "buildLogs",
            "errorMessage", "errorCategory", "attempts", "createdAt", "updatedAt",
        ]


class DeploymentSummarySerializer(serializers.ModelSerializer):
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Deployment
        fields = ["id", "version", "status", "createdAt"]


class AdminDeploymentSerializer(DeploymentSerializer):
    websiteName = serializers.CharField(source="website.name", read_only=True)
    owner = serializers.EmailField(source="user.email", read_only=True)

    class Meta(DeploymentSerializer.Meta):
        fields = DeploymentSerializer.Meta.fields + ["websiteName", "owner"]


class PublishSerializer(serializers.Serializer):
    commitMessage = serializers.CharField(max_length=255, required=False, allow_blank=True)


class DeploymentWebhookSerializer(serializers.Serializer):
    deploymentId = serializers.UUIDField()
    status = serializers.ChoiceField(choices=["in_progress", "success", "failed", "canceled"])
    deploymentUrl = serializers.URLField(required=False, allow_null=True)
    errorMessage = serializers.CharField(required=False, allow_null=True, allow_blank=True)


# ============================================
# Domain Serializers
# ============================================
class DomainSerializer(serializers.ModelSerializer):
    websiteId = serializers.UUIDField(source="website_id", read_only=True)
    isPrimary = serializers.BooleanField(source="is_primary", read_only=True)
    verificationStatus = serializers.CharField(source="verification_status", read_only=True)
    verificationErrors = serializers.CharField(source="verification_errors", read_only=True)
    dnsRecords = serializers.JSONField(source="dns_records", read_only=True)
    lastVerifiedAt = serializers.DateTimeField(source="last_verified_at", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Domain
        fields = [
            "id", "websiteId", "name", "status", "verificationStatus", "verificationErrors",
            "isPrimary", "dnsRecords", "lastVerifiedAt", "createdAt",
        ]


class DomainCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)

    def validate_name(self, value):
        value = value.strip().lower()
        if not DOMAIN_NAME_REGEX.match(value):
            raise serializers.ValidationError("Invalid domain name format")
        if Domain.objects.filter(name__iexact=value).exists():
            raise serializers.ValidationError("This domain is already in use")
        return value


class AdminDomainSerializer(DomainSerializer):
    websiteName = serializers.CharField(source="website.name", read_only=True)
    owner = serializers.EmailField(source="user.email", read_only=True)

    class Meta(DomainSerializer.Meta):
        fields = DomainSerializer.Meta.fields + ["websiteName", "owner"]


# ============================================
# Image Serializers
# ============================================
class ImageSerializer(serializers.ModelSerializer):
    url = serializers.SerializerMethodField()

    class Meta:
        model = Image
        fields = [
            "id", "file_name", "original_name", "url", "file_size", "mime_type",
            "source", "external_id", "attribution", "created_at",
        ]

    def get_url(self, obj):
        if not obj.file:
            return None
        url = obj.file.url
        request = self.context.get("request")
        return request.build_absolute_uri(url) if request else url


class StockSaveSerializer(serializers.Serializer):
    photoId = serializers.CharField(max_length=100)


# ============================================
# Content library Serializers
# ============================================
class ContentSerializer(serializers.ModelSerializer):
    websiteId = serializers.PrimaryKeyRelatedField(
        source="website",
        queryset=Website.objects.all(),
        required=False,
        allow_null=True,
    )
    parentId = serializers.PrimaryKeyRelatedField(
        source="parent",
        queryset=Content.objects.all(),
        required=False,
        allow_null=True,
    )
    owner = serializers.UUIDField(source="user_id", read_only=True)

    class Meta:
        model = Content
        fields = [
            "id", "title", "description", "type", "content", "config", "status",
            "tags", "preview", "slug", "websiteId", "parentId", "owner",
            "published_at", "created_at", "updated_at",
        ]
        read_only_fields = ["id", "slug", "owner", "published_at", "created_at", "updated_at"]

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
            raise serializers.ValidationError("Tags must be a list of strings.")
        # Drop blanks and duplicates, keep order
        cleaned = []
        for tag in (t.strip() for t in value):
            if tag and tag not in cleaned:
                cleaned.append(tag)
        return cleaned

    def validate_websiteId(self, value):
        request = self.context.get("request")
        if value is not None and request and value.user_id != request.user.pk:
            raise serializers.ValidationError("Website not found.")
        return value

    def validate_parentId(self, value):
        if value is None:
            return value
        if self.instance is not None and value.pk == self.instance.pk:
            raise serializers.ValidationError("Content cannot be its own parent.")
        # Children pin their parent (on_delete=PROTECT)
        request = self.context.get("request")
        if request and value.user_id != request.user.pk and not is_admin(request.user):
            raise serializers.ValidationError("Parent content not found.")
        return value


class ContentCloneSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200, required=False)


# ============================================
# AI input Serializers
# ============================================
class GenerateContentSerializer(serializers.Serializer):
    websiteId = serializers.UUIDField()
    pageId = serializers.CharField(max_length=100)
    elementType = serializers.CharField(max_length=50)
    prompt = serializers.CharField(max_length=2000)
    tone = serializers.CharField(max_length=50, required=False, default="professional")
    length = serializers.ChoiceField(choices=["short", "medium", "long"], required=False, default="medium")


class GenerateLayoutSerializer(serializers.Serializer):
    websiteId = serializers.UUIDField()
    pageId = serializers.CharField(max_length=100)
    prompt = serializers.CharField(max_length=2000)
    pageType = serializers.CharField(max_length=50, required=False, default="landing")


class GenerateStyleSerializer(serializers.Serializer):
    websiteId = serializers.UUIDField()
    prompt = serializers.CharField(max_length=2000)
    currentStyles = serializers.DictField(required=False, default=dict)


MODIFY_ACTIONS = ["rewrite", "expand", "shorten", "changeStyle", "proofread"]


class ModifyContentSerializer(serializers.Serializer):
    content = serializers.CharField(max_length=10000)
    action = serializers.ChoiceField(choices=MODIFY_ACTIONS)
    style = serializers.CharField(max_length=100, required=False)

    def validate(self, data):
        if data["action"] == "changeStyle" and not data.get("style"):
            raise serializers.ValidationError({"style": "A style is required for the changeStyle action."})
        return data


class ColorSchemeSerializer(serializers.Serializer):
    industry = serializers.CharField(max_length=100, required=False, default="general")
    mood = serializers.CharField(max_length=100, required=False, default="professional")
    baseColor = serializers.RegexField(r"^#[0-9a-fA-F]{6}$", required=False)


class FontPairingSerializer(serializers.Serializer):
    style = serializers.CharField(max_length=100, required=False, default="modern")
    industry = serializers.CharField(max_length=100, required=False, default="general")


class CacheKeySerializer(serializers.Serializer):
    key = serializers.CharField(max_length=250)
