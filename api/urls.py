from django.urls import path
from rest_framework.permissions import AllowAny
from rest_framework.renderers import JSONOpenAPIRenderer, OpenAPIRenderer
from rest_framework.schemas import get_schema_view

from . import ai_views, auth_views, views


def schema_view(renderer):
    return get_schema_view(
        title="Landing Pad API",
        description="Projects, publishing, custom domains, AI content and media.",
        version="1.0.0",
        renderer_classes=[renderer],
        authentication_classes=[],
        permission_classes=[AllowAny],
    )


urlpatterns = [
    # API docs
    path('docs/openapi.json', schema_view(JSONOpenAPIRenderer), name='openapi-json'),
    path('docs/openapi.yaml', schema_view(OpenAPIRenderer), name='openapi-yaml'),

    # Auth
    path('auth/register', auth_views.RegisterView.as_view(), name='auth-register'),
    path('auth/login', auth_views.LoginView.as_view(), name='auth-login'),
    path('auth/refresh-token', auth_views.RefreshTokenView.as_view(), name='auth-refresh-token'),
    path('auth/logout', auth_views.LogoutView.as_view(), name='auth-logout'),
    path('auth/me', auth_views.MeView.as_view(), name='auth-me'),
    path('auth/verify-email/<str:token>', auth_views.VerifyEmailView.as_view(), name='auth-verify-email'),
    path('auth/resend-verification', auth_views.ResendVerificationView.as_view(), name='auth-resend-verification'),
    path('auth/change-password', auth_views.ChangePasswordView.as_view(), name='auth-change-password'),
    path('auth/forgot-password', auth_views.ForgotPasswordView.as_view(), name='auth-forgot-password'),
    path('auth/reset-password', auth_views.ResetPasswordView.as_view(), name='auth-reset-password'),

    # Users
    path('users/me', views.UserMeView.as_view(), name='user-me'),
    path('users', views.UserListView.as_view(), name='user-list'),
    path('users/<uuid:user_id>', views.UserDetailView.as_view(), name='user-detail'),

    # Templates
    path('templates', views.TemplateListCreateView.as_view(), name='template-list'),
    path('templates/category/<str:category>', views.TemplateCategoryView.as_view(), name='template-category'),
    path('templates/<uuid:template_id>', views.TemplateDetailView.as_view(), name='template-detail'),

    # Projects
    path('projects', views.ProjectListCreateView.as_view(), name='project-list'),
    path('projects/<uuid:website_id>', views.ProjectDetailView.as_view(), name='project-detail'),

    # Publishing
    path('websites/<uuid:website_id>/publish', views.PublishWebsiteView.as_view(), name='website-publish'),
    path('websites/<uuid:website_id>/deployments', views.DeploymentListView.as_view(), name='deployment-list'),
    path('websites/<uuid:website_id>/deployments/latest', views.LatestDeploymentView.as_view(), name='deployment-latest'),
    path('websites/<uuid:website_id>/deployments/<uuid:deployment_id>', views.DeploymentDetailView.as_view(), name='deployment-detail'),
    path('websites/<uuid:website_id>/deployments/<uuid:deployment_id>/cancel', views.DeploymentCancelView.as_view(), name='deployment-cancel'),
    path('webhooks/deployment', views.DeploymentWebhookView.as_view(), name='deployment-webhook'),

    # Domains
    path('domains/availability', views.DomainAvailabilityView.as_view(), name='domain-availability'),
    path('websites/<uuid:website_id>/domains', views.DomainListCreateView.as_view(), name='domain-list'),
    path('websites/<uuid:website_id>/domains/<uuid:domain_id>', views.DomainDetailView.as_view(), name='domain-detail'),
    path('websites/<uuid:website_id>/domains/<uuid:domain_id>/primary', views.DomainPrimaryView.as_view(), name='domain-primary'),
    path('websites/<uuid:website_id>/domains/<uuid:domain_id>/verify', views.DomainVerifyView.as_view(), name='domain-verify'),

    # AI
    path('ai/generate/content', ai_views.GenerateContentView.as_view(), name='ai-generate-content'),
    path('ai/generate/layout', ai_views.GenerateLayoutView.as_view(), name='ai-generate-layout'),
    path('ai/generate/style', ai_views.GenerateStyleView.as_view(), name='ai-generate-style'),
    path('ai/modify/content', ai_views.ModifyContentView.as_view(), name='ai-modify-content'),
    path('ai/suggestions/<uuid:website_id>/<str:page_id>', ai_views.SuggestionsView.as_view(), name='ai-suggestions'),
    path('ai/generate-color-scheme', ai_views.ColorSchemeView.as_view(), name='ai-color-scheme'),
    path('ai/generate-font-pairings', ai_views.FontPairingsView.as_view(), name='ai-font-pairings'),

    # Images
    path('images', views.ImageListView.as_view(), name='image-list'),
    path('images/upload', views.ImageUploadView.as_view(), name='image-upload'),
    path('images/storage-check', views.StorageCheckView.as_view(), name='image-storage-check'),
    path('images/stock/search', views.StockSearchView.as_view(), name='stock-search'),
    path('images/stock/random', views.StockRandomView.as_view(), name='stock-random'),
    path('images/stock/save', views.StockSaveView.as_view(), name='stock-save'),
    path('images/<uuid:image_id>', views.ImageDetailView.as_view(), name='image-detail'),

    # Content library
    path('content', views.ContentListCreateView.as_view(), name='content-list'),
    path('content/tags', views.ContentTagsView.as_view(), name='content-tags'),
    path('content/import', views.ContentImportView.as_view(), name='content-import'),
    path('content/<uuid:content_id>', views.ContentDetailView.as_view(), name='content-detail'),
    path('content/<uuid:content_id>/publish', views.ContentPublishView.as_view(), name='content-publish'),
    path('content/<uuid:content_id>/unpublish', views.ContentUnpublishView.as_view(), name='content-unpublish'),
    path('content/<uuid:content_id>/clone', views.ContentCloneView.as_view(), name='content-clone'),

    # Subscriptions
    path('subscriptions/plans', views.PlanListView.as_view(), name='subscription-plans'),
    path('subscriptions/me', views.MySubscriptionView.as_view(), name='subscription-me'),
    path('subscriptions/subscribe', views.SubscribeView.as_view(), name='subscription-subscribe'),
    path('subscriptions/cancel', views.CancelSubscriptionView.as_view(), name='subscription-cancel'),

    # Admin
    path('admin/stats', views.AdminStatsView.as_view(), name='admin-stats'),
    path('admin/websites', views.AdminWebsiteListView.as_view(), name='admin-websites'),
    path('admin/deployments', views.AdminDeploymentListView.as_view(), name='admin-deployments'),
    path('admin/domains', views.AdminDomainListView.as_view(), name='admin-domains'),
    path('admin/cache/stats', views.CacheStatsView.as_view(), name='admin-cache-stats'),
    path('admin/cache/flush', views.CacheFlushView.as_view(), name='admin-cache-flush'),
    path('admin/cache/key', views.CacheKeyDeleteView.as_view(), name='admin-cache-key'),

    # Health check
    path('health', views.health_check, name='health-check'),
    path('health/deep', views.DeepHealthView.as_view(), name='health-deep'),
]
