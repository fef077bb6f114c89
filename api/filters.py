import django_filters.rest_framework as filters
from django.db.models import Q

from .models import AppUser, Content, Deployment, Domain, Template, Website


class TemplateFilter(filters.FilterSet):
    category = filters.CharFilter(field_name="category", lookup_expr="iexact")
    is_default = filters.BooleanFilter(field_name="is_default")

    class Meta:
        model = Template
        fields = ["category", "is_default"]


class WebsiteFilter(filters.FilterSet):
    status = filters.CharFilter(field_name="status", lookup_expr="iexact")
    user = filters.UUIDFilter(field_name="user_id")

    # created_at range
    created_at_after = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_at_before = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Website
        fields = ["status", "user", "created_at_after", "created_at_before"]


class DeploymentFilter(filters.FilterSet):
    status = filters.CharFilter(field_name="status", lookup_expr="iexact")
    user = filters.UUIDFilter(field_name="user_id")
    website = filters.UUIDFilter(field_name="website_id")

    class Meta:
        model = Deployment
        fields = ["status", "user", "website"]


class DomainFilter(filters.FilterSet):
    status = filters.CharFilter(field_name="status", lookup_expr="iexact")
    verification_status = filters.CharFilter(field_name="verification_status", lookup_expr="iexact")
    user = filters.UUIDFilter(field_name="user_id")

    class Meta:
        model = Domain
        fields = ["status", "verification_status", "user"]


class AppUserFilter(filters.FilterSet):
    role = filters.CharFilter(field_name="role", lookup_expr="iexact")
    status = filters.CharFilter(field_name="status", lookup_expr="iexact")
    tier = filters.CharFilter(field_name="subscription_tier", lookup_expr="iexact")

    class Meta:
        model = AppUser
        fields = ["role", "status", "tier"]


class ContentFilter(filters.FilterSet):
    type = filters.CharFilter(method="filter_type")
    status = filters.CharFilter(field_name="status", lookup_expr="iexact")
    websiteId = filters.UUIDFilter(field_name="website_id")
    tags = filters.CharFilter(method="filter_tags")

    class Meta:
        model = Content
        fields = ["type", "status", "websiteId", "tags"]

    def filter_type(self, queryset, name, value):
        # "all" is what the library UI sends for no filter
        if not value or value == "all":
            return queryset
        return queryset.filter(type=value)

    def filter_tags(self, queryset, name, value):
        # Comma separated; a row matches when it carries any of the tags
        tags = [t.strip() for t in value.split(",") if t.strip()]
        if not tags:
            return queryset

        condition = Q()
        for tag in tags:
            condition |= Q(tags__icontains=f'"{tag}"')
        return queryset.filter(condition)
