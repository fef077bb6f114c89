"""
Tests for shared helpers, validators, throttling, error envelopes,
management commands and the Postmark email backend.
"""

import hashlib
import hmac
import json
from datetime import datetime, timezone as dt_timezone
from io import StringIO
from unittest.mock import patch

import pytest
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.core.mail import EmailMultiAlternatives
from django.core.management import call_command
from django.core.management.base import CommandError
from rest_framework import status

from api.exceptions import APIError, custom_exception_handler
from api.management.validators import clean_import_items, validate_template_data, validate_website_content
from api.models import AppUser, Image, Template, UserRole
from api.throttles import GeneralRequestThrottle
from api.utils import (
    add_readability,
    build_ai_cache_key,
    build_version,
    cached_ai_response,
    delete_ai_cache_key,
    verify_webhook_signature,
)


class TestVersionsAndSignatures:

    def test_build_version_is_utc(self):
        now = datetime(2024, 3, 9, 7, 5, tzinfo=dt_timezone.utc)
        assert build_version(now) == "2024.03.09.07.05"

    def test_signature_accepts_prefix(self, settings):
        body = b'{"status": "success"}'
        digest = hmac.new(b"test-webhook-secret", body, hashlib.sha256).hexdigest()

        assert verify_webhook_signature(body, digest)
        assert verify_webhook_signature(body, f"sha256={digest}")
        assert not verify_webhook_signature(body, "sha256=deadbeef")
        assert not verify_webhook_signature(body, None)

    def test_source_specific_secret(self, settings):
        settings.WEBHOOK_SOURCE_SECRETS = {"vercel": "vercel-secret"}
        body = b"{}"
        digest = hmac.new(b"vercel-secret", body, hashlib.sha256).hexdigest()

        assert verify_webhook_signature(body, digest, source="Vercel")
        assert not verify_webhook_signature(body, digest)


class TestAICache:

    def test_key_ignores_payload_order(self):
        assert build_ai_cache_key("op", {"a": 1, "b": 2}) == build_ai_cache_key("op", {"b": 2, "a": 1})
        assert build_ai_cache_key("op", {"a": 1}) != build_ai_cache_key("other", {"a": 1})

    def test_errors_are_not_cached(self):
        def failing():
            raise RuntimeError("provider down")

        with pytest.raises(RuntimeError):
            cached_ai_response("op", {"x": 1}, failing)

        data, from_cache = cached_ai_response("op", {"x": 1}, lambda: {"ok": True})
        assert data == {"ok": True}
        assert from_cache is False

    def test_delete_rejects_foreign_keys(self):
        assert delete_ai_cache_key("admin_stats") is False


class TestReadability:

    def test_only_text_fields_get_stats(self):
        result = add_readability({"headline": "Hi", "content": "Short sentences read well. They do."})
        assert set(result["readability"]) == {"content"}

    def test_no_text_fields_leaves_payload_alone(self):
        payload = {"colors": {"primary": "#000"}}
        assert add_readability(payload) is payload


class TestValidators:

    def test_pages_need_ids_and_slugs(self):
        with pytest.raises(ValueError, match="slug"):
            validate_website_content({"pages": [{"id": "home", "name": "Home"}]})

    def test_duplicate_page_slugs(self):
        page = {"id": "a", "name": "A", "slug": "home"}
        with pytest.raises(ValueError, match="Duplicate"):
            validate_website_content({"pages": [page, {**page, "id": "b"}]})

    def test_template_data_requires_list(self):
        with pytest.raises(ValueError):
            validate_template_data({"name": "x"})

    def test_import_rejects_scalars(self):
        with pytest.raises(ValueError):
            clean_import_items("just a string")


class TestThrottleRates:

    @pytest.mark.parametrize("rate, expected", [
        ("100/15m", (100, 900)),
        ("10/min", (10, 60)),
        ("5/h", (5, 3600)),
        ("1000/1d", (1000, 86400)),
    ])
    def test_parse_rate(self, rate, expected):
        assert GeneralRequestThrottle().parse_rate(rate) == expected

    def test_bad_period(self):
        with pytest.raises(ValueError):
            GeneralRequestThrottle().parse_rate("10/fortnight")


class TestExceptionHandler:

    def test_api_error_envelope(self):
        response = custom_exception_handler(APIError("Website not found", status.HTTP_404_NOT_FOUND), {})
        assert response.status_code == 404
        assert response.data == {"success": False, "message": "Website not found", "error": None}

    def test_unhandled_error_is_500(self, settings):
        settings.DEBUG = False
        response = custom_exception_handler(RuntimeError("kaboom"), {})
        assert response.status_code == 500
        assert response.data["error"] is None


@pytest.mark.django_db
class TestCommands:

    def test_seed_templates_default_file(self):
        call_command("seed_templates", stdout=StringIO())
        assert Template.objects.filter(name="Simple Landing Page", is_default=True).exists()

        # Running again updates instead of duplicating
        call_command("seed_templates", stdout=StringIO())
        assert Template.objects.filter(name="Simple Landing Page").count() == 1

    def test_seed_templates_invalid_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"name": "No content", "category": "x"}]))

        with pytest.raises(CommandError, match="Validation error"):
            call_command("seed_templates", file=str(path), stdout=StringIO())

    def test_seed_templates_missing_file(self, tmp_path):
        with pytest.raises(CommandError, match="not found"):
            call_command("seed_templates", file=str(tmp_path / "nope.json"), stdout=StringIO())

    def test_create_admin(self):
        call_command("create_admin", email="Boss@Example.com", password="Secret123", stdout=StringIO())

        admin = AppUser.objects.get(email="boss@example.com")
        assert admin.role == UserRole.ADMIN
        assert admin.email_verified is True
        assert admin.check_password("Secret123")

    def test_create_admin_short_password(self):
        with pytest.raises(CommandError):
            call_command("create_admin", email="boss@example.com", password="short", stdout=StringIO())

    def test_clean_uploads(self, user):
        kept = Image(user=user, file_name="kept.png", original_name="kept.png", mime_type="image/png")
        kept.file.save("kept.png", ContentFile(b"png"), save=True)
        orphan = default_storage.save(f"uploads/{user.pk}/orphan.png", ContentFile(b"png"))

        call_command("clean_uploads", "--dry-run", stdout=StringIO())
        assert default_storage.exists(orphan)

        call_command("clean_uploads", stdout=StringIO())
        assert not default_storage.exists(orphan)
        assert default_storage.exists(kept.file.name)
        assert Image.objects.filter(pk=kept.pk).exists()


class TestPostmarkBackend:

    def test_sends_html_and_text(self, settings):
        settings.POSTMARK_API_TOKEN = "token"
        from api.postmark_backend import EmailBackend

        message = EmailMultiAlternatives("Verify", "Plain body", "from@example.com", ["to@example.com"])
        message.attach_alternative("<p>HTML body</p>", "text/html")

        with patch("api.postmark_backend.PostmarkClient") as client_cls:
            sent = EmailBackend().send_messages([message])

        assert sent == 1
        payload = client_cls.return_value.emails.send.call_args.kwargs
        assert payload["To"] == "to@example.com"
        assert payload["HtmlBody"] == "<p>HTML body</p>"
        assert payload["TextBody"] == "Plain body"

    def test_failures_raise_unless_silent(self, settings):
        settings.POSTMARK_API_TOKEN = "token"
        from api.postmark_backend import EmailBackend

        message = EmailMultiAlternatives("Hi", "Body", "from@example.com", ["to@example.com"])

        with patch("api.postmark_backend.PostmarkClient") as client_cls:
            client_cls.return_value.emails.send.side_effect = RuntimeError("rejected")
            assert EmailBackend(fail_silently=True).send_messages([message]) == 0
            with pytest.raises(RuntimeError):
                EmailBackend().send_messages([message])
