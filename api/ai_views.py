import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import APIError
from .handlers.ai import DEFAULT_COLOR_SCHEME, SUGGESTION_SHAPES, AIServiceError, OpenAIContentService
from .models import Website
from .serializers import (
    ColorSchemeSerializer,
    FontPairingSerializer,
    GenerateContentSerializer,
    GenerateLayoutSerializer,
    GenerateStyleSerializer,
    ModifyContentSerializer,
)
from .throttles import AIRequestThrottle
from .utils import add_readability

logger = logging.getLogger(__name__)


class AIAPIView(APIView):
    """
    Base for the AI helpers: authenticated, on the 'ai' throttle, and
    provider failures come back as 502 in the usual error envelope.
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [AIRequestThrottle]
    service_class = OpenAIContentService

    def get_service(self):
        return self.service_class()

    def get_website(self, website_id):
        website = Website.objects.filter(pk=website_id, user=self.request.user).first()
        if website is None:
            raise APIError("Website not found", status.HTTP_404_NOT_FOUND)
        return website

    def handle_exception(self, exc):
        if isinstance(exc, AIServiceError):
            logger.error(f"[{self.__class__.__name__}] AI provider error: {exc}")
            return Response(
                {"success": False, "message": f"AI service error: {exc}", "error": None},
                status=status.HTTP_502_BAD_GATEWAY,
            )
        return super().handle_exception(exc)


class GenerateContentView(AIAPIView):
    def post(self, request):
        serializer = GenerateContentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        self.get_website(data["websiteId"])

        result = self.get_service().generate_content(
            data["elementType"], data["prompt"], tone=data["tone"], length=data["length"]
        )
        return Response(add_readability(result))


class GenerateLayoutView(AIAPIView):
    def post(self, request):
        serializer = GenerateLayoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        self.get_website(data["websiteId"])

        result = self.get_service().generate_layout(data["prompt"], page_type=data["pageType"])
        result.setdefault("sections", [])
        return Response(result)


class GenerateStyleView(AIAPIView):
    def post(self, request):
        serializer = GenerateStyleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        website = self.get_website(data["websiteId"])

        # Fall back to the website's saved settings for context
        current = data["currentStyles"] or website.settings or {}
        result = self.get_service().generate_style(
            data["prompt"],
            current_colors=current.get("colors"),
            current_fonts=current.get("fonts"),
        )
        return Response(result)


class ModifyContentView(AIAPIView):
    def post(self, request):
        serializer = ModifyContentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = self.get_service().modify_content(data["content"], data["action"], style=data.get("style"))
        except ValueError as e:
            raise APIError(str(e), status.HTTP_400_BAD_REQUEST)

        return Response(add_readability(result))


class SuggestionsView(AIAPIView):
    def get(self, request, website_id, page_id):
        website = self.get_website(website_id)
        suggestion_type = request.query_params.get("type", "text")
        if suggestion_type not in SUGGESTION_SHAPES:
            raise APIError(
                f"Invalid suggestion type. Use one of: {', '.join(SUGGESTION_SHAPES)}",
                status.HTTP_400_BAD_REQUEST,
            )

        pages = (website.content or {}).get("pages", [])
        page = next((p for p in pages if isinstance(p, dict) and p.get("id") == page_id), None)
        if page is None:
            raise APIError("Page not found", status.HTTP_404_NOT_FOUND)

        element_types = [e.get("type") for e in page.get("elements", []) if isinstance(e, dict)]
        context = (
            f"Website: {website.name}. {website.description or ''}\n"
            f"Page: {page.get('name', page_id)}\n"
            f"Existing sections: {', '.join(t for t in element_types if t) or 'none'}"
        )

        result = self.get_service().generate_suggestions(suggestion_type, context)
        return Response({"suggestions": result.get("suggestions", [])})


class ColorSchemeView(AIAPIView):
    def post(self, request):
        serializer = ColorSchemeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = self.get_service().generate_color_scheme(
                industry=data["industry"], mood=data["mood"], base_color=data.get("baseColor")
            )
        except AIServiceError as e:
            logger.warning(f"Color scheme generation failed, returning the default scheme: {e}")
            return Response({**DEFAULT_COLOR_SCHEME, "fallback": True})

        return Response(result)


class FontPairingsView(AIAPIView):
    def post(self, request):
        serializer = FontPairingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self.get_service().generate_font_pairings(style=data["style"], industry=data["industry"])
        return Response({"pairings": result.get("pairings", [])})
