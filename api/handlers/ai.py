import json
import logging

import openai
from django.conf import settings

from api.utils import cached_ai_response

logger = logging.getLogger(__name__)


class AIServiceError(Exception):
    """Raised when the provider call fails (network, auth, quota, ...)."""


class AIResponseFormatError(AIServiceError):
    """Raised when the provider answers with something that is not a JSON object."""


DEFAULT_COLOR_SCHEME = {
    "primary": "#4361ee",
    "secondary": "#3f37c9",
    "accent": "#f72585",
    "background": "#ffffff",
    "text": "#212529",
}


# JSON shape requested for each element type
ELEMENT_SHAPES = {
    "hero": '{"headline": "attention grabbing headline, 5-9 words", "subheadline": "supporting text, 1-2 sentences", "ctaText": "call to action button text, 3-5 words"}',
    "features": '{"title": "section title", "features": [{"title": "feature name", "description": "feature explanation"}]}',
    "testimonial": '{"quote": "testimonial quote, 1-3 sentences", "author": "person\'s name", "role": "job title and company"}',
    "about": '{"title": "about section title", "content": "full about section text"}',
    "cta": '{"headline": "call to action headline", "description": "supporting text", "buttonText": "button text"}',
    "pricing": '{"title": "pricing section title", "plans": [{"name": "plan name", "price": "price with period", "description": "short plan description", "features": ["feature"]}]}',
    "text": '{"heading": "section heading", "content": "main text content"}',
}

MODIFY_INSTRUCTIONS = {
    "rewrite": "Rewrite the provided content while preserving its meaning and intent, but using different wording.",
    "expand": "Expand the provided content with additional relevant details and supporting points. Aim for about 50% more text.",
    "shorten": "Condense the provided content while keeping its key messages. Aim for about 50% less text.",
    "changeStyle": "Rewrite the provided content in a {style} style. Keep the meaning and key points.",
    "proofread": "Correct any grammar, spelling or punctuation errors in the provided content without changing its meaning.",
}

SUGGESTION_SHAPES = {
    "text": '{"heading": "suggested heading", "subheading": "suggested subheading"}',
    "layout": '{"structure": "described flow of sections", "elements": ["element type"]}',
    "style": '{"colors": {"primary": "#hex", "secondary": "#hex", "accent": "#hex", "background": "#hex", "text": "#hex"}, "fonts": {"heading": "font name", "body": "font name"}}',
}


class OpenAIContentService:
    """
    Wraps the chat completions API for the builder's AI helpers.

    Every public method returns a parsed dict. Results are cached by the
    request payload, so identical requests within AI_CACHE_TTL do not hit
    the provider twice.
    """

    def __init__(self, client=None):
        self.model = settings.OPENAI_MODEL
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise AIServiceError("OpenAI API key is not configured")
            self._client = openai.OpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.OPENAI_TIMEOUT,
            )
        return self._client

    # ============================================
    # Provider call
    # ============================================
    def _complete(self, system_prompt, user_prompt, temperature=0.7):
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            logger.error(f"[OpenAIContentService] Provider call failed: {e}")
            raise AIServiceError(str(e)) from e

        text = response.choices[0].message.content or ""

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"[OpenAIContentService] Invalid JSON from provider: {text[:200]}")
            raise AIResponseFormatError("AI response was not valid JSON") from e

        if not isinstance(data, dict):
            raise AIResponseFormatError("AI response was not a JSON object")

        return data

    def _cached(self, operation, payload, system_prompt, user_prompt, temperature=0.7):
        data, _ = cached_ai_response(
            operation,
            {"model": self.model, **payload},
            lambda: self._complete(system_prompt, user_prompt, temperature),
        )
        return data

    # ============================================
    # Operations
    # ============================================
    def generate_content(self, element_type, prompt, tone="professional", length="medium"):
        shape = ELEMENT_SHAPES.get(element_type, ELEMENT_SHAPES["text"])
        system_prompt = (
            "You are an expert website content generator.\n"
            f"Create {length} content for a {element_type} section with a {tone} tone based on the user's prompt.\n"
            f"Return only a JSON object with these fields:\n{shape}"
        )
        payload = {"elementType": element_type, "prompt": prompt, "tone": tone, "length": length}
        return self._cached("generate_content", payload, system_prompt, prompt)

    def generate_layout(self, prompt, page_type="landing"):
        system_prompt = (
            "You are an expert website layout designer.\n"
            f"Generate a structured layout for a {page_type} page based on the user's prompt.\n"
            "Return only a JSON object of the form "
            '{"sections": [{"id": "section-1", "type": "hero|features|about|testimonial|cta|pricing|text", '
            '"title": "short label", "settings": {}}]}'
        )
        payload = {"prompt": prompt, "pageType": page_type}
        return self._cached("generate_layout", payload, system_prompt, prompt)

    def generate_style(self, prompt, current_colors=None, current_fonts=None):
        context = ""
        if current_colors:
            context += f"\nExisting colors: {json.dumps(current_colors, sort_keys=True)}"
        if current_fonts:
            context += f"\nExisting fonts: {json.dumps(current_fonts, sort_keys=True)}"

        system_prompt = (
            "You are an expert website visual designer.\n"
            f"Generate style recommendations based on the user's prompt.{context}\n"
            "Return only a JSON object of the form "
            '{"colors": {"primary": "#hex", "secondary": "#hex", "accent": "#hex", "background": "#hex", "text": "#hex"}, '
            '"fonts": {"heading": "Google font name", "body": "Google font name"}}'
        )
        payload = {"prompt": prompt, "colors": current_colors or {}, "fonts": current_fonts or {}}
        return self._cached("generate_style", payload, system_prompt, prompt)

    def modify_content(self, content, action, style=None):
        if action not in MODIFY_INSTRUCTIONS:
            raise ValueError(f"Unknown action '{action}'")

        instruction = MODIFY_INSTRUCTIONS[action].format(style=style or "professional")
        system_prompt = (
            "You are an expert content editor.\n"
            f"{instruction}\n"
            'Return only a JSON object with a single field "content" containing the resulting text.'
        )
        payload = {"content": content, "action": action, "style": style}
        return self._cached("modify_content", payload, system_prompt, content)

    def generate_suggestions(self, suggestion_type, context):
        shape = SUGGESTION_SHAPES.get(suggestion_type, SUGGESTION_SHAPES["text"])
        system_prompt = (
            "You are an expert website design assistant.\n"
            f"Generate 3 {suggestion_type} suggestions for the page described by the user.\n"
            'Return only a JSON object of the form {"suggestions": [{"id": "1", "type": "'
            f'{suggestion_type}", "title": "short title", "content": {shape}}}]}}'
        )
        payload = {"type": suggestion_type, "context": context}
        return self._cached("generate_suggestions", payload, system_prompt, context, temperature=0.8)

    def generate_color_scheme(self, industry="general", mood="professional", base_color=None):
        context = f"Generate a cohesive color scheme for the {industry} industry with a {mood} mood"
        if base_color:
            context += f" based on the color {base_color}"

        system_prompt = (
            "You are an expert color designer for websites.\n"
            "Ensure all colors have sufficient contrast for accessibility.\n"
            "Return only a JSON object of the form "
            '{"primary": "#hex", "secondary": "#hex", "accent": "#hex", "background": "#hex", "text": "#hex"}'
        )
        payload = {"industry": industry, "mood": mood, "baseColor": base_color}
        return self._cached("generate_color_scheme", payload, system_prompt, context)

    def generate_font_pairings(self, style="modern", industry="general"):
        context = f"Generate 3 font pairings with a {style} style suitable for the {industry} industry"
        system_prompt = (
            "You are an expert typography designer for websites.\n"
            "Use only fonts available in Google Fonts.\n"
            'Return only a JSON object of the form {"pairings": [{"heading": "font name", "body": "font name"}]}'
        )
        payload = {"style": style, "industry": industry}
        return self._cached("generate_font_pairings", payload, system_prompt, context)
