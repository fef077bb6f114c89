# admin.py
from django.contrib import admin, messages
from django.db import transaction
from .models import AppUser, PlanModel, Subscription, Template, Website, Domain, Deployment, Image, Content, DeploymentStatus, UserStatus
from .handlers.deployments import has_active_deployments
from .tasks import process_deployment_task, verify_domain_task


#Bulk Action to suspend accounts - to be used in AppUserAdmin
@admin.action(description='Suspend selected users')
def suspend_selected_users(modeladmin, request, queryset):
    updated = queryset.exclude(status=UserStatus.SUSPENDED).update(status=UserStatus.SUSPENDED, refresh_token=None)
    modeladmin.message_user(request, f"Suspended {updated} user(s)")


@admin.register(AppUser)
class AppUserAdmin(admin.ModelAdmin):
    list_display = ('email', 'first_name', 'last_name', 'role', 'status', 'subscription_tier', 'email_verified', 'last_login', 'created_at')
    list_filter = ('role', 'status', 'subscription_tier', 'email_verified')
    search_fields = ('email', 'first_name', 'last_name')
    readonly_fields = ('password', 'refresh_token', 'verification_token', 'reset_password_token', 'last_login', 'created_at', 'updated_at')
    actions = [suspend_selected_users]

    fieldsets = (
        (None, {
            'fields': ('email', 'first_name', 'last_name', 'password')
        }),
        ('Access', {
            'fields': ('role', 'status', 'subscription_tier', 'email_verified')
        }),
        ('Tokens', {
            'fields': ('verification_token', 'reset_password_token', 'reset_password_expires', 'refresh_token')
        }),
        ('Timing', {
            'fields': ('last_login', 'created_at', 'updated_at')
        }),
    )


@admin.register(PlanModel)
class PlanModelAdmin(admin.ModelAdmin):
    list_display = ('plan_type', 'name', 'monthly_price', 'website_limit', 'custom_domains')


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ('user', 'plan', 'payment_status', 'subscription_expiry', 'is_paid')
    list_filter = ('plan', 'is_paid', 'payment_status')
    search_fields = ('user__email',)


@admin.register(Template)
class TemplateAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'is_default', 'updated_at')
    list_filter = ('category', 'is_default')
    search_fields = ('name', 'description')


@admin.register(Website)
class WebsiteAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'user', 'status', 'custom_domain', 'last_deployed_at', 'created_at')
    list_display_links = ('name',)
    list_filter = ('status',)
    search_fields = ('name', 'slug', 'user__email')
    readonly_fields = ('slug', 'public_url', 'last_published_at', 'last_deployed_at', 'last_successful_deployment')
    date_hierarchy = 'created_at'


#Re-queue through the worker so the normal retry and notification path runs
@admin.action(description='Retry selected deployments')
def retry_selected_deployments(modeladmin, request, queryset):
    retried = 0
    busy = 0
    for deployment in queryset.filter(status__in=[DeploymentStatus.FAILED, DeploymentStatus.CANCELED]).select_related('website'):
        # Publishing allows one active deployment per website
        if has_active_deployments(deployment.website):
            busy += 1
            continue
        deployment.status = DeploymentStatus.QUEUED
        deployment.completed_at = None
        deployment.error_message = None
        deployment.error_category = None
        deployment.append_log(f"Retry requested from admin by {request.user}")
        deployment.save()
        transaction.on_commit(lambda pk=str(deployment.pk): process_deployment_task.delay(pk))
        retried += 1

    skipped = queryset.count() - retried - busy
    modeladmin.message_user(request, f"Queued {retried} deployment(s) for retry")
    if busy:
        modeladmin.message_user(request, f"Skipped {busy} deployment(s) whose website already has an active deployment", level=messages.WARNING)
    if skipped:
        modeladmin.message_user(request, f"Skipped {skipped} deployment(s) that are not failed or canceled", level=messages.WARNING)


@admin.register(Deployment)
class DeploymentAdmin(admin.ModelAdmin):
    list_display = ('website', 'version', 'status', 'error_category', 'attempts', 'build_time', 'created_at', 'completed_at')
    list_filter = ('status', 'error_category')
    search_fields = ('website__name', 'version', 'user__email')
    readonly_fields = ('build_logs', 'build_time', 'attempts', 'created_at', 'completed_at')
    actions = [retry_selected_deployments]


@admin.action(description='Verify selected domains')
def verify_selected_domains(modeladmin, request, queryset):
    for domain in queryset:
        verify_domain_task.delay(str(domain.pk))
    modeladmin.message_user(request, f"Queued verification for {queryset.count()} domain(s)")


@admin.register(Domain)
class DomainAdmin(admin.ModelAdmin):
    list_display = ('name', 'website', 'status', 'verification_status', 'is_primary', 'last_verified_at')
    list_filter = ('status', 'verification_status', 'is_primary')
    search_fields = ('name', 'website__name', 'user__email')
    readonly_fields = ('dns_records', 'verification_errors', 'last_verified_at')
    actions = [verify_selected_domains]


@admin.register(Image)
class ImageAdmin(admin.ModelAdmin):
    list_display = ('original_name', 'user', 'source', 'mime_type', 'file_size', 'created_at')
    list_filter = ('source', 'mime_type')
    search_fields = ('original_name', 'user__email')


@admin.register(Content)
class ContentAdmin(admin.ModelAdmin):
    list_display = ('title', 'type', 'status', 'user', 'website', 'published_at', 'updated_at')
    list_filter = ('type', 'status')
    search_fields = ('title', 'description')
    readonly_fields = ('slug', 'published_at')
