from rest_framework import pagination
from rest_framework.response import Response


# Default pagination for list endpoints
class StandardResultsSetPagination(pagination.PageNumberPagination):
    page_size = 10  # Default page size
    page_size_query_param = "page_size"  # Allow client to override
    max_page_size = 100  # maximum page size


# Pagination class for the content library
class ContentPagination(pagination.PageNumberPagination):
    page_size = 12
    page_size_query_param = "limit"
    max_page_size = 100


# Pagination class for Images
class ImagePagination(pagination.PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100


# Pagination class for Deployments
class DeploymentPagination(pagination.PageNumberPagination):
    """
    Deployment history, shaped as
    {items, pagination: {totalItems, itemsPerPage, currentPage, totalPages}}
    to match what the publishing dashboard reads.
    """
    page_size = 10
    page_size_query_param = "limit"
    max_page_size = 50

    def get_paginated_response(self, data):
        return Response({
            "items": data,
            "pagination": {
                "totalItems": self.page.paginator.count,
                "itemsPerPage": self.get_page_size(self.request),
                "currentPage": self.page.number,
                "totalPages": self.page.paginator.num_pages,
            },
        })
