import json
import logging
import mimetypes
import os
import uuid
from datetime import timedelta

from celery import current_app
from django.conf import settings
from django.core.cache import cache
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db import IntegrityError, connection, transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, generics, status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import APIError
from .filters import AppUserFilter, ContentFilter, DeploymentFilter, DomainFilter, TemplateFilter, WebsiteFilter
from .handlers.deployments import (
    create_deployment,
    get_deployments,
    get_latest_successful_deployment,
    has_active_deployments,
    notify_deployment_status,
)
from .handlers.domains import (
    DomainVerifier,
    check_domain_availability,
    create_domain,
    list_domains,
    set_primary_domain,
)
from .management.validators import clean_import_items
from .models import (
    AppUser, Content, ContentStatus, Deployment, DeploymentStatus, Domain, DomainStatus,
    Image, ImageSource, PaymentType, PlanModel, PlanType, Subscription, Template,
    VerificationStatus, Website, WebsiteStatus, ACTIVE_DEPLOYMENT_STATUSES, FINISHED_DEPLOYMENT_STATUSES,
)
from .pagination import ContentPagination, DeploymentPagination, ImagePagination, StandardResultsSetPagination
from .permissions import HasPaidPlan, IsAdminOrReadOnly, IsAdminRole, is_admin
from .serializers import (
    AdminDeploymentSerializer,
    AdminDomainSerializer,
    AdminUserUpdateSerializer,
    AdminWebsiteSerializer,
    AppUserSerializer,
    CacheKeySerializer,
    ContentCloneSerializer,
    ContentSerializer,
    DeploymentSerializer,
    DeploymentSummarySerializer,
    DeploymentWebhookSerializer,
    DomainCreateSerializer,
    DomainSerializer,
    ImageSerializer,
    PlanModelSerializer,
    PublishSerializer,
    StockSaveSerializer,
    SubscribeSerializer,
    SubscriptionSerializer,
    TemplateListSerializer,
    TemplateSerializer,
    WebsiteListSerializer,
    WebsiteSerializer,
)
from .services import UnsplashAPI, UnsplashAPIError
from .signals import ADMIN_STATS_CACHE_KEY
from .tasks import process_deployment_task, verify_domain_task
from .utils import delete_ai_cache_key, flush_ai_cache, get_ai_cache_stats, verify_webhook_signature

logger = logging.getLogger(__name__)


def get_user_website(request, website_id):
    """The caller's own website, or 404 (never 403, so ids of other users stay hidden)."""
    website = Website.objects.filter(pk=website_id, user=request.user).first()
    if website is None:
        raise APIError("Website not found", status.HTTP_404_NOT_FOUND)
    return website


#===================================
# Users
#====================================
class UserMeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(AppUserSerializer(request.user).data)

    def patch(self, request):
        serializer = AppUserSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class UserListView(generics.ListAPIView):
    """
    Admin list of accounts.
    - Filters: role, status, tier
    - Search: email, first_name, last_name
    """
    queryset = AppUser.objects.all()
    serializer_class = AppUserSerializer
    permission_classes = [IsAdminRole]
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = AppUserFilter
    search_fields = ['email', 'first_name', 'last_name']
    ordering_fields = ['created_at', 'email', 'last_login']


class UserDetailView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request, user_id):
        user = get_object_or_404(AppUser, pk=user_id)
        return Response(AppUserSerializer(user).data)

    def patch(self, request, user_id):
        user = get_object_or_404(AppUser, pk=user_id)
        serializer = AdminUserUpdateSerializer(user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Admin {request.user.email} updated user {user.email}: {serializer.validated_data}")
        return Response(AppUserSerializer(user).data)

    def delete(self, request, user_id):
        user = get_object_or_404(AppUser, pk=user_id)
        if user.pk == request.user.pk:
            raise APIError("You cannot delete your own account", status.HTTP_400_BAD_REQUEST)
        user.delete()
        logger.info(f"Admin {request.user.email} deleted user {user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)


#===================================
# Templates
#====================================
class TemplateListCreateView(generics.ListCreateAPIView):
    """
    Public template gallery. Only admins create.
    - Filters: category, is_default
    - Search: name, description
    - Ordering: name, created_at
    """
    queryset = Template.objects.all()
    permission_classes = [IsAdminOrReadOnly]
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = TemplateFilter
    search_fields = ['name', 'description']
    ordering_fields = ['name', 'created_at', 'category']

    def get_serializer_class(self):
        return TemplateSerializer if self.request.method == 'POST' else TemplateListSerializer


class TemplateDetailView(generics.RetrieveUpdateDestroyAPIView):
    # Websites keep their copied content when a template is removed (FK is SET_NULL)
    queryset = Template.objects.all()
    serializer_class = TemplateSerializer
    permission_classes = [IsAdminOrReadOnly]
    lookup_url_kwarg = 'template_id'


class TemplateCategoryView(generics.ListAPIView):
    serializer_class = TemplateListSerializer
    permission_classes = [AllowAny]
    pagination_class = None

    def get_queryset(self):
        return Template.objects.filter(category__iexact=self.kwargs['category'])


#===================================
# Projects (websites)
#====================================
class ProjectListCreateView(generics.ListCreateAPIView):
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = WebsiteFilter
    search_fields = ['name']
    ordering_fields = ['name', 'created_at', 'updated_at']

    def get_queryset(self):
        return Website.objects.filter(user=self.request.user)

    def get_serializer_class(self):
        return WebsiteSerializer if self.request.method == 'POST' else WebsiteListSerializer

    def create(self, request, *args, **kwargs):
        user = request.user
        plan = user.get_plan()
        current = Website.objects.filter(user=user).count()

        if plan is not None and not plan.allows_more_websites(current):
            raise APIError(
                f"Your {plan.name} plan allows {plan.website_limit} websites. Upgrade to create more.",
                status.HTTP_403_FORBIDDEN,
            )

        if request.data.get('customDomain') and user.subscription_tier == PlanType.FREE:
            raise APIError(HasPaidPlan.message, status.HTTP_403_FORBIDDEN)

        serializer = WebsiteSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        website = serializer.save(user=user)

        logger.info(f"Website created: {website.slug} by {user.email}")
        return Response(WebsiteSerializer(website).data, status=status.HTTP_201_CREATED)


class ProjectDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, website_id):
        website = get_user_website(request, website_id)
        return Response(WebsiteSerializer(website).data)

    def patch(self, request, website_id):
        website = get_user_website(request, website_id)

        if request.data.get('customDomain') and request.user.subscription_tier == PlanType.FREE:
            raise APIError(HasPaidPlan.message, status.HTTP_403_FORBIDDEN)

        serializer = WebsiteSerializer(website, data=request.data, partial=True, context={'request': request})
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    def delete(self, request, website_id):
        website = get_user_website(request, website_id)
        website.delete()
        logger.info(f"Website deleted: {website.slug} by {request.user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)


#===================================
# Publishing and deployments
#====================================
class PublishWebsiteView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, website_id):
        website = get_user_website(request, website_id)
        serializer = PublishSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            # Row lock so two publish clicks cannot both pass the active check
            website = Website.objects.select_for_update().get(pk=website.pk)

            if has_active_deployments(website):
                raise APIError(
                    "A deployment is already in progress for this website",
                    status.HTTP_409_CONFLICT,
                )

            deployment = create_deployment(website, request.user, serializer.validated_data.get('commitMessage'))
            website.last_published_at = timezone.now()
            website.save(update_fields=['last_published_at', 'updated_at'])

            transaction.on_commit(lambda: process_deployment_task.delay(str(deployment.pk)))

        return Response({
            "success": True,
            "message": "Website publishing initiated",
            "deployment": DeploymentSummarySerializer(deployment).data,
        })


class DeploymentListView(generics.ListAPIView):
    serializer_class = DeploymentSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = DeploymentPagination

    def get_queryset(self):
        website = get_user_website(self.request, self.kwargs['website_id'])
        return get_deployments(website)


class DeploymentDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, website_id, deployment_id):
        website = get_user_website(request, website_id)
        deployment = get_object_or_404(Deployment, pk=deployment_id, website=website)
        return Response(DeploymentSerializer(deployment).data)


class DeploymentCancelView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, website_id, deployment_id):
        website = get_user_website(request, website_id)
        deployment = get_object_or_404(Deployment, pk=deployment_id, website=website)

        if not deployment.is_active:
            raise APIError(
                f"Only queued or in-progress deployments can be canceled (current status: {deployment.status})",
                status.HTTP_400_BAD_REQUEST,
            )

        deployment.status = DeploymentStatus.CANCELED
        deployment.completed_at = timezone.now()
        deployment.append_log(f"Canceled by {request.user.email}")
        deployment.save()
        notify_deployment_status(deployment)

        return Response({"success": True, "message": "Deployment canceled", "deployment": DeploymentSerializer(deployment).data})


class LatestDeploymentView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, website_id):
        website = get_user_website(request, website_id)
        deployment = get_latest_successful_deployment(website)
        if deployment is None:
            raise APIError("No successful deployment found", status.HTTP_404_NOT_FOUND)
        return Response(DeploymentSerializer(deployment).data)


class DeploymentWebhookView(APIView):
    """
    Status callbacks from the hosting provider.
    Signed with HMAC-SHA256 over the raw body; see verify_webhook_signature.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    SIGNATURE_HEADERS = ("X-Webhook-Signature", "X-Signature", "X-Hub-Signature-256")

    def post(self, request):
        # Read the raw body before DRF parses it
        raw_body = request.body
        signature = next((request.headers.get(h) for h in self.SIGNATURE_HEADERS if request.headers.get(h)), None)

        if not verify_webhook_signature(raw_body, signature, source=request.query_params.get('source')):
            logger.warning("Rejected deployment webhook with an invalid signature")
            raise APIError("Invalid webhook signature", status.HTTP_401_UNAUTHORIZED)

        serializer = DeploymentWebhookSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        with transaction.atomic():
            deployment = (
                Deployment.objects.select_for_update()
                .select_related('website')
                .filter(pk=data['deploymentId'])
                .first()
            )
            if deployment is None:
                raise APIError("Deployment not found", status.HTTP_404_NOT_FOUND)

            # Late callbacks never reopen a canceled, failed or finished deployment
            if deployment.status in FINISHED_DEPLOYMENT_STATUSES:
                logger.info(
                    f"Ignoring webhook status {data['status']} for deployment {deployment.pk}, "
                    f"already {deployment.status}"
                )
                return Response({"success": True, "ignored": True})

            now = timezone.now()
            deployment.status = data['status']
            deployment.append_log(f"Webhook reported status {data['status']}")
            if data.get('deploymentUrl'):
                deployment.deployment_url = data['deploymentUrl']
            if data.get('errorMessage'):
                deployment.error_message = data['errorMessage']
            if deployment.status != DeploymentStatus.IN_PROGRESS:
                deployment.completed_at = now

            deployment.save()
            if deployment.status == DeploymentStatus.SUCCESS:
                website = deployment.website
                website.status = WebsiteStatus.PUBLISHED
                website.public_url = deployment.deployment_url or website.default_url
                website.last_deployed_at = now
                website.last_successful_deployment = deployment
                website.save()

        if deployment.status != DeploymentStatus.IN_PROGRESS:
            notify_deployment_status(deployment)

        return Response({"success": True})


#===================================
# Custom domains (paid plans)
#====================================
class DomainListCreateView(APIView):
    permission_classes = [IsAuthenticated, HasPaidPlan]

    def get(self, request, website_id):
        website = get_user_website(request, website_id)
        return Response(DomainSerializer(list_domains(website), many=True).data)

    def post(self, request, website_id):
        website = get_user_website(request, website_id)
        serializer = DomainCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            with transaction.atomic():
                domain = create_domain(website, request.user, serializer.validated_data['name'])
                transaction.on_commit(lambda: verify_domain_task.delay(str(domain.pk)))
        except IntegrityError:
            raise APIError("This domain is already in use", status.HTTP_400_BAD_REQUEST)

        return Response(DomainSerializer(domain).data, status=status.HTTP_201_CREATED)


class DomainDetailView(APIView):
    permission_classes = [IsAuthenticated, HasPaidPlan]

    def get(self, request, website_id, domain_id):
        website = get_user_website(request, website_id)
        domain = get_object_or_404(Domain, pk=domain_id, website=website)
        return Response(DomainSerializer(domain).data)

    def delete(self, request, website_id, domain_id):
        website = get_user_website(request, website_id)
        domain = get_object_or_404(Domain, pk=domain_id, website=website)

        if domain.is_primary and Domain.objects.filter(website=website).exclude(pk=domain.pk).exists():
            raise APIError(
                "Cannot remove the primary domain. Set another domain as primary first.",
                status.HTTP_400_BAD_REQUEST,
            )

        with transaction.atomic():
            if domain.is_primary or website.custom_domain == domain.name:
                website.custom_domain = None
                website.save(update_fields=['custom_domain', 'updated_at'])
            domain.delete()

        logger.info(f"Domain deleted: {domain.name} from website {website.pk}")
        return Response(status=status.HTTP_204_NO_CONTENT)


class DomainPrimaryView(APIView):
    permission_classes = [IsAuthenticated, HasPaidPlan]

    def put(self, request, website_id, domain_id):
        website = get_user_website(request, website_id)
        domain = get_object_or_404(Domain, pk=domain_id, website=website)

        if domain.status != DomainStatus.ACTIVE or domain.verification_status != VerificationStatus.VERIFIED:
            raise APIError(
                "Only active and verified domains can be set as primary",
                status.HTTP_400_BAD_REQUEST,
            )

        if not set_primary_domain(website, domain.pk):
            raise APIError("Domain not found", status.HTTP_404_NOT_FOUND)

        domain.refresh_from_db()
        return Response({"success": True, "domain": DomainSerializer(domain).data})


class DomainVerifyView(APIView):
    permission_classes = [IsAuthenticated, HasPaidPlan]

    def post(self, request, website_id, domain_id):
        website = get_user_website(request, website_id)
        domain = get_object_or_404(Domain, pk=domain_id, website=website)

        result = DomainVerifier().verify(domain)
        domain.refresh_from_db()

        return Response({
            "success": result["verified"],
            "verification": result,
            "domain": DomainSerializer(domain).data,
        })


class DomainAvailabilityView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        name = request.query_params.get('name')
        if not name:
            raise APIError("Query parameter 'name' is required", status.HTTP_400_BAD_REQUEST)
        return Response(check_domain_availability(name))


#===================================
# Images
#====================================
def unsplash_client():
    try:
        return UnsplashAPI()
    except UnsplashAPIError as e:
        raise APIError(e.message, e.status_code)


def int_param(request, name, default, minimum=1, maximum=None):
    raw = request.query_params.get(name, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise APIError(f"'{name}' must be an integer", status.HTTP_400_BAD_REQUEST)
    value = max(value, minimum)
    return min(value, maximum) if maximum else value


class ImageListView(generics.ListAPIView):
    serializer_class = ImageSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = ImagePagination

    def get_queryset(self):
        return Image.objects.filter(user=self.request.user)


class ImageUploadView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        uploaded = request.FILES.get('image')
        if uploaded is None:
            raise APIError("No image file provided", status.HTTP_400_BAD_REQUEST)

        if uploaded.size > settings.MAX_IMAGE_UPLOAD_SIZE:
            raise APIError(
                f"File exceeds maximum size of {settings.MAX_IMAGE_UPLOAD_SIZE // (1024 * 1024)}MB",
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            )

        ext = os.path.splitext(uploaded.name)[1].lower()
        content_type = uploaded.content_type or ""
        if not content_type.startswith("image/") or ext not in settings.ALLOWED_IMAGE_EXTENSIONS:
            raise APIError(
                "Only image files are allowed (jpg, jpeg, png, gif, webp, svg)",
                status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            )

        file_name = f"{uuid.uuid4().hex}{ext}"
        image = Image(
            user=request.user,
            file_name=file_name,
            original_name=uploaded.name[:255],
            file_size=uploaded.size,
            mime_type=content_type,
            source=ImageSource.UPLOAD,
        )
        image.file.save(file_name, uploaded, save=True)

        logger.info(f"Image uploaded: {image.file.name} ({uploaded.size} bytes) by {request.user.email}")
        return Response(
            {
                "success": True,
                "message": "Image uploaded successfully",
                "image": ImageSerializer(image, context={'request': request}).data,
            },
            status=status.HTTP_201_CREATED,
        )


class ImageDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, image_id):
        image = get_object_or_404(Image, pk=image_id, user=request.user)
        return Response(ImageSerializer(image, context={'request': request}).data)

    def delete(self, request, image_id):
        image = get_object_or_404(Image, pk=image_id, user=request.user)
        image.delete()  # The stored file goes with it (see signals)
        return Response(status=status.HTTP_204_NO_CONTENT)


class StockSearchView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        query = request.query_params.get('query')
        if not query:
            raise APIError("Search query is required", status.HTTP_400_BAD_REQUEST)

        client = unsplash_client()
        try:
            results = client.search_photos(
                query,
                page=int_param(request, 'page', 1),
                per_page=int_param(request, 'per_page', 20, maximum=30),
                orientation=request.query_params.get('orientation', 'landscape'),
            )
        except UnsplashAPIError as e:
            raise APIError(e.message, e.status_code)

        return Response(results)


class StockRandomView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        client = unsplash_client()
        try:
            photos = client.random_photos(
                query=request.query_params.get('query'),
                orientation=request.query_params.get('orientation', 'landscape'),
                count=int_param(request, 'count', 1, maximum=30),
            )
        except UnsplashAPIError as e:
            raise APIError(e.message, e.status_code)

        return Response(photos)


class StockSaveView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = StockSaveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        photo_id = serializer.validated_data['photoId']

        client = unsplash_client()
        try:
            content, content_type, photo = client.download_photo(photo_id)
        except UnsplashAPIError as e:
            raise APIError(e.message, e.status_code)

        content_type = content_type.split(";")[0].strip()
        ext = mimetypes.guess_extension(content_type) or ".jpg"
        if ext == ".jpe":
            ext = ".jpg"
        file_name = f"{uuid.uuid4().hex}{ext}"
        normalized = UnsplashAPI.normalize_photo(photo)

        image = Image(
            user=request.user,
            file_name=file_name,
            original_name=f"unsplash-{photo_id}{ext}",
            file_size=len(content),
            mime_type=content_type,
            source=ImageSource.UNSPLASH,
            external_id=photo_id,
            attribution={
                "photographer": normalized["photographer"],
                "photographerUrl": normalized["photographerUrl"],
                "sourceUrl": photo.get("links", {}).get("html"),
                "provider": "Unsplash",
            },
        )
        image.file.save(file_name, ContentFile(content), save=True)

        return Response(
            {
                "success": True,
                "message": "Stock photo saved",
                "image": ImageSerializer(image, context={'request': request}).data,
            },
            status=status.HTTP_201_CREATED,
        )


class StorageCheckView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        check_path = f"uploads/.storage-check-{uuid.uuid4().hex}.txt"
        writable, error = False, None

        try:
            saved = default_storage.save(check_path, ContentFile(b"ok"))
            with default_storage.open(saved) as fh:
                writable = fh.read() == b"ok"
            default_storage.delete(saved)
        except OSError as e:
            error = str(e)
            logger.error(f"Storage check failed: {e}")

        return Response({
            "backend": f"{default_storage.__class__.__module__}.{default_storage.__class__.__name__}",
            "writable": writable,
            "mediaUrl": settings.MEDIA_URL,
            "error": error,
        })


#===================================
# Content library
#====================================
def visible_content(user):
    if is_admin(user):
        return Content.objects.all()
    return Content.objects.filter(Q(user=user) | Q(status=ContentStatus.PUBLISHED))


def can_modify_content(user, content):
    return is_admin(user) or content.user_id == user.pk


class ContentListCreateView(generics.ListCreateAPIView):
    """
    Own content plus everything published.
    - Filters: type, status, websiteId, tags (comma separated, any match)
    - Search: title, description
    """
    serializer_class = ContentSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = ContentPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = ContentFilter
    search_fields = ['title', 'description']
    ordering_fields = ['updated_at', 'created_at', 'title']
    ordering = ['-updated_at']

    def get_queryset(self):
        return visible_content(self.request.user)

    def perform_create(self, serializer):
        serializer.save(user=self.request.user)


class ContentAccessMixin:
    def get_content(self, request, content_id, modify=False):
        content = visible_content(request.user).filter(pk=content_id).first()
        if content is None:
            raise APIError("Content not found", status.HTTP_404_NOT_FOUND)
        if modify and not can_modify_content(request.user, content):
            raise APIError("You do not have permission to modify this content", status.HTTP_403_FORBIDDEN)
        return content


class ContentDetailView(ContentAccessMixin, APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, content_id):
        return Response(ContentSerializer(self.get_content(request, content_id)).data)

    def patch(self, request, content_id):
        content = self.get_content(request, content_id, modify=True)
        serializer = ContentSerializer(content, data=request.data, partial=True, context={'request': request})
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    def delete(self, request, content_id):
        content = self.get_content(request, content_id, modify=True)
        if content.children.exists():
            raise APIError(
                "Cannot delete content that has child items. Delete or move them first.",
                status.HTTP_400_BAD_REQUEST,
            )
        content.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class ContentPublishView(ContentAccessMixin, APIView):
    permission_classes = [IsAuthenticated]
    target_status = ContentStatus.PUBLISHED

    def post(self, request, content_id):
        content = self.get_content(request, content_id, modify=True)
        content.status = self.target_status
        content.save()
        return Response({"success": True, "content": ContentSerializer(content).data})


class ContentUnpublishView(ContentPublishView):
    target_status = ContentStatus.DRAFT


class ContentCloneView(ContentAccessMixin, APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, content_id):
        source = self.get_content(request, content_id)
        serializer = ContentCloneSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        own = source.user_id == request.user.pk
        clone = Content.objects.create(
            user=request.user,
            website=source.website if own else None,
            parent=source.parent if own else None,
            title=serializer.validated_data.get('title') or f"{source.title} (Copy)"[:200],
            description=source.description,
            type=source.type,
            content=source.content,
            config=source.config,
            tags=list(source.tags or []),
            preview=source.preview,
            status=ContentStatus.DRAFT,
        )
        return Response(ContentSerializer(clone).data, status=status.HTTP_201_CREATED)


class ContentTagsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        tags = set()
        for row in visible_content(request.user).values_list('tags', flat=True):
            tags.update(t for t in (row or []) if isinstance(t, str))
        return Response({"tags": sorted(tags)})


class ContentImportView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    ALLOWED_MIME_TYPES = {"application/json", "text/json", "application/x-json", "application/octet-stream"}

    def post(self, request):
        uploaded = request.FILES.get('file')
        if uploaded is None:
            raise APIError("No file provided", status.HTTP_400_BAD_REQUEST)

        if uploaded.size > settings.MAX_IMPORT_UPLOAD_SIZE:
            raise APIError("Import file is too large", status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)

        if not uploaded.name.lower().endswith(".json") or (
            uploaded.content_type and uploaded.content_type not in self.ALLOWED_MIME_TYPES
        ):
            raise APIError("Only JSON files (.json) can be imported", status.HTTP_400_BAD_REQUEST)

        try:
            data = json.load(uploaded)
            items, skipped = clean_import_items(data)
        except (ValueError, UnicodeDecodeError) as e:
            raise APIError(f"Invalid import file: {e}", status.HTTP_400_BAD_REQUEST)

        created = []
        with transaction.atomic():
            for item in items:
                created.append(Content.objects.create(
                    user=request.user,
                    title=str(item['title'])[:200],
                    description=item.get('description'),
                    type=item['type'],
                    content=item.get('content') if isinstance(item.get('content'), dict) else {},
                    config=item.get('config') if isinstance(item.get('config'), dict) else {},
                    tags=[t for t in item.get('tags', []) if isinstance(t, str)] if isinstance(item.get('tags'), list) else [],
                    preview=item.get('preview'),
                    status=ContentStatus.DRAFT,
                ))

        logger.info(f"Content import by {request.user.email}: {len(created)} imported, {skipped} skipped")
        return Response(
            {
                "success": True,
                "message": f"Imported {len(created)} item(s)",
                "imported": len(created),
                "skipped": skipped,
                "items": ContentSerializer(created, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )


#===================================
# Subscriptions
#====================================
class PlanListView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        plans = []
        for plan in PlanModel.objects.all():
            data = PlanModelSerializer(plan).data
            data["current"] = plan.plan_type == request.user.subscription_tier
            plans.append(data)
        return Response({"plans": plans})


class MySubscriptionView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        subscription = Subscription.objects.select_related('plan').filter(user=request.user).first()
        if subscription is not None:
            return Response(SubscriptionSerializer(subscription).data)

        free_plan = PlanModel.objects.filter(plan_type=PlanType.FREE).first()
        return Response({
            "payment_status": PaymentType.UNPAID,
            "subscription_expiry": None,
            "is_paid": False,
            "active": False,
            "plan": PlanModelSerializer(free_plan).data if free_plan else None,
        })


class SubscribeView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = SubscribeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        plan = PlanModel.objects.filter(plan_type=serializer.validated_data['planType']).first()
        if plan is None:
            raise APIError("Invalid plan", status.HTTP_400_BAD_REQUEST)

        paid = plan.monthly_price > 0
        user = request.user

        with transaction.atomic():
            subscription, _ = Subscription.objects.update_or_create(
                user=user,
                defaults={
                    "plan": plan,
                    "payment_status": PaymentType.PAID if paid else PaymentType.UNPAID,
                    "is_paid": paid,
                    "subscription_expiry": timezone.now().date() + timedelta(days=30),
                },
            )
            user.subscription_tier = plan.plan_type
            user.save(update_fields=["subscription_tier", "updated_at"])

        logger.info(f"{user.email} subscribed to {plan.plan_type}")
        return Response({"success": True, "subscription": SubscriptionSerializer(subscription).data})


class CancelSubscriptionView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        user = request.user
        free_plan = get_object_or_404(PlanModel, plan_type=PlanType.FREE)

        with transaction.atomic():
            Subscription.objects.filter(user=user).update(
                plan=free_plan,
                payment_status=PaymentType.UNPAID,
                is_paid=False,
                subscription_expiry=None,
                updated_at=timezone.now(),
            )
            user.subscription_tier = PlanType.FREE
            user.save(update_fields=["subscription_tier", "updated_at"])

        logger.info(f"{user.email} canceled their subscription")
        return Response({"success": True, "message": "Subscription canceled. You are now on the free plan."})


#===================================
# Admin
#====================================
class AdminStatsView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request):
        stats = cache.get(ADMIN_STATS_CACHE_KEY)
        if stats is None:
            stats = self.build_stats()
            cache.set(ADMIN_STATS_CACHE_KEY, stats, timeout=60)
        return Response(stats)

    @staticmethod
    def build_stats():
        by_status = dict(
            Deployment.objects.order_by().values('status').annotate(n=Count('id')).values_list('status', 'n')
        )
        succeeded = by_status.get(DeploymentStatus.SUCCESS, 0)
        failed = by_status.get(DeploymentStatus.FAILED, 0)
        finished = succeeded + failed

        recent_deployments = Deployment.objects.select_related('website', 'user').order_by('-created_at')[:5]
        recent_domains = Domain.objects.select_related('website', 'user').order_by('-created_at')[:5]

        return {
            "users": AppUser.objects.count(),
            "websites": Website.objects.count(),
            "templates": Template.objects.count(),
            "deployments": {
                "total": sum(by_status.values()),
                "active": sum(by_status.get(s, 0) for s in ACTIVE_DEPLOYMENT_STATUSES),
                "failed": failed,
                "successRate": round(succeeded / finished * 100, 2) if finished else 100,
            },
            "domains": {
                "total": Domain.objects.count(),
                "pending": Domain.objects.filter(verification_status=VerificationStatus.PENDING).count(),
            },
            "queue": {
                "queued": by_status.get(DeploymentStatus.QUEUED, 0),
                "inProgress": by_status.get(DeploymentStatus.IN_PROGRESS, 0),
            },
            "recentDeployments": AdminDeploymentSerializer(recent_deployments, many=True).data,
            "recentDomains": AdminDomainSerializer(recent_domains, many=True).data,
            "generatedAt": timezone.now().isoformat(),
        }


class AdminWebsiteListView(generics.ListAPIView):
    queryset = Website.objects.select_related('user')
    serializer_class = AdminWebsiteSerializer
    permission_classes = [IsAdminRole]
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = WebsiteFilter
    search_fields = ['name', 'slug', 'user__email']
    ordering_fields = ['created_at', 'updated_at', 'name']


class AdminDeploymentListView(generics.ListAPIView):
    queryset = Deployment.objects.select_related('website', 'user')
    serializer_class = AdminDeploymentSerializer
    permission_classes = [IsAdminRole]
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = DeploymentFilter
    search_fields = ['website__name', 'version', 'user__email']
    ordering_fields = ['created_at', 'status']


class AdminDomainListView(generics.ListAPIView):
    queryset = Domain.objects.select_related('website', 'user')
    serializer_class = AdminDomainSerializer
    permission_classes = [IsAdminRole]
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = DomainFilter
    search_fields = ['name', 'website__name', 'user__email']
    ordering_fields = ['created_at', 'name']


class CacheStatsView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request):
        return Response(get_ai_cache_stats())


class CacheFlushView(APIView):
    permission_classes = [IsAdminRole]

    def post(self, request):
        removed = flush_ai_cache()
        return Response({"success": True, "message": f"AI cache flushed ({removed} entries removed)"})


class CacheKeyDeleteView(APIView):
    permission_classes = [IsAdminRole]

    def delete(self, request):
        serializer = CacheKeySerializer(data=request.data)
        if not serializer.is_valid():
            raise APIError("Cache key is required", status.HTTP_400_BAD_REQUEST, error=serializer.errors)

        key = serializer.validated_data['key']
        if not delete_ai_cache_key(key):
            raise APIError("Cache key not found", status.HTTP_404_NOT_FOUND)
        return Response({"success": True, "message": f"Cache key {key} deleted"})


#===================================
# Health check
#====================================
@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def health_check(request):
    return Response({
        "status": "ok",
        "timestamp": timezone.now().isoformat(),
        "version": settings.APP_VERSION,
    })


class DeepHealthView(APIView):
    """
    Database and cache must answer for a 200. Celery workers are
    reported but a missing worker only marks the service degraded.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request):
        checks = {}

        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
            checks["database"] = {"status": "ok"}
        except Exception as e:
            logger.error(f"Health check: database unavailable: {e}")
            checks["database"] = {"status": "error", "error": str(e)}

        try:
            cache.set("health_check_key", "ok", timeout=10)
            ok = cache.get("health_check_key") == "ok"
            checks["cache"] = {"status": "ok" if ok else "error"}
        except Exception as e:
            logger.error(f"Health check: cache unavailable: {e}")
            checks["cache"] = {"status": "error", "error": str(e)}

        worker_count = 0
        try:
            workers = current_app.control.inspect(timeout=1.0).ping()
            worker_count = len(workers or {})
            checks["celery"] = {"status": "ok" if worker_count else "unavailable", "workers": worker_count}
        except Exception as e:
            logger.warning(f"Health check: celery unreachable: {e}")
            checks["celery"] = {"status": "unavailable", "workers": 0, "error": str(e)}

        healthy = checks["database"]["status"] == "ok" and checks["cache"]["status"] == "ok"
        overall = "ok" if healthy and worker_count else ("degraded" if healthy else "error")

        return Response(
            {
                "status": overall,
                "timestamp": timezone.now().isoformat(),
                "version": settings.APP_VERSION,
                "checks": checks,
                "workers": worker_count,
            },
            status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )
