"""
Tests for the admin API, AI cache management, health checks, API docs and Django admin actions.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from django.core.cache import cache

from api.admin import retry_selected_deployments, suspend_selected_users
from api.handlers.deployments import create_deployment
from api.models import Deployment, DeploymentStatus, UserStatus, Website
from api.signals import ADMIN_STATS_CACHE_KEY
from api.utils import cached_ai_response


pytestmark = pytest.mark.django_db


class TestAdminStats:

    def test_requires_admin(self, user_client):
        response = user_client.get("/api/admin/stats")
        assert response.status_code == 403
        assert response.data["message"] == "Admin access required"

    def test_counts(self, admin_client, website, user):
        success = create_deployment(website, user)
        success.status = DeploymentStatus.SUCCESS
        success.save()
        failed = create_deployment(website, user)
        failed.status = DeploymentStatus.FAILED
        failed.save()
        create_deployment(website, user)

        response = admin_client.get("/api/admin/stats")

        assert response.status_code == 200
        assert response.data["websites"] == 1
        assert response.data["deployments"] == {"total": 3, "active": 1, "failed": 1, "successRate": 50.0}
        assert response.data["queue"] == {"queued": 1, "inProgress": 0}
        assert len(response.data["recentDeployments"]) == 3

    def test_stats_are_cached_until_rows_change(self, admin_client, user, template):
        first = admin_client.get("/api/admin/stats").data
        assert cache.get(ADMIN_STATS_CACHE_KEY) is not None

        website = Website(user=user, name="Another")
        website.apply_template(template)
        website.save()

        assert cache.get(ADMIN_STATS_CACHE_KEY) is None
        second = admin_client.get("/api/admin/stats").data
        assert second["websites"] == first["websites"] + 1


class TestAdminLists:

    def test_websites(self, admin_client, website, pro_website):
        response = admin_client.get("/api/admin/websites")
        assert response.data["count"] == 2
        assert {w["owner"] for w in response.data["results"]} == {"owner@example.com", "pro@example.com"}

    def test_deployments_filter_by_status(self, admin_client, website, user):
        failed = create_deployment(website, user)
        failed.status = DeploymentStatus.FAILED
        failed.save()
        create_deployment(website, user)

        response = admin_client.get("/api/admin/deployments", {"status": "failed"})
        assert response.data["count"] == 1
        assert response.data["results"][0]["websiteName"] == "My Site"

    def test_domains(self, admin_client, pro_website, pro_user):
        from api.handlers.domains import create_domain
        create_domain(pro_website, pro_user, "listed.com")

        response = admin_client.get("/api/admin/domains")
        assert response.data["results"][0]["name"] == "listed.com"


class TestCacheManagement:

    def prime(self):
        data, _ = cached_ai_response("font_pairings", {"style": "modern"}, lambda: {"pairings": []})
        cached_ai_response("font_pairings", {"style": "modern"}, lambda: {"pairings": []})
        return data

    def test_stats(self, admin_client):
        self.prime()
        response = admin_client.get("/api/admin/cache/stats")
        assert response.data == {"hits": 1, "misses": 1, "keys": 1, "hitRate": 50.0}

    def test_flush(self, admin_client):
        self.prime()
        response = admin_client.post("/api/admin/cache/flush")

        assert response.status_code == 200
        assert admin_client.get("/api/admin/cache/stats").data["keys"] == 0

    def test_delete_key(self, admin_client):
        self.prime()
        key = cache.get("ai_cache:keys")[0]

        assert admin_client.delete("/api/admin/cache/key", {"key": key}, format="json").status_code == 200
        assert admin_client.delete("/api/admin/cache/key", {"key": key}, format="json").status_code == 404

    def test_delete_key_requires_key(self, admin_client):
        response = admin_client.delete("/api/admin/cache/key", {}, format="json")
        assert response.status_code == 400
        assert response.data["message"] == "Cache key is required"

    def test_non_admin_forbidden(self, user_client):
        assert user_client.post("/api/admin/cache/flush").status_code == 403


class TestHealth:

    def test_shallow(self, api_client):
        response = api_client.get("/api/health")
        assert response.status_code == 200
        assert response.data["status"] == "ok"

    def test_deep_with_workers(self, api_client):
        with patch("api.views.current_app") as app:
            app.control.inspect.return_value.ping.return_value = {"worker@host": {"ok": "pong"}}
            response = api_client.get("/api/health/deep")

        assert response.status_code == 200
        assert response.data["status"] == "ok"
        assert response.data["checks"]["database"]["status"] == "ok"
        assert response.data["workers"] == 1

    def test_deep_without_workers_is_degraded(self, api_client):
        with patch("api.views.current_app") as app:
            app.control.inspect.return_value.ping.return_value = None
            response = api_client.get("/api/health/deep")

        assert response.status_code == 200
        assert response.data["status"] == "degraded"

    def test_deep_cache_failure_is_503(self, api_client):
        with patch("api.views.current_app") as app, patch("api.views.cache") as broken_cache:
            app.control.inspect.return_value.ping.return_value = {"worker@host": {"ok": "pong"}}
            broken_cache.set.side_effect = ConnectionError("redis down")
            response = api_client.get("/api/health/deep")

        assert response.status_code == 503
        assert response.data["checks"]["cache"]["status"] == "error"


class TestApiDocs:

    def test_openapi_json(self, api_client):
        response = api_client.get("/api/docs/openapi.json")

        assert response.status_code == 200
        schema = json.loads(response.content)
        assert schema["info"]["title"] == "Landing Pad API"
        assert "/api/projects" in schema["paths"]
        assert "/api/websites/{website_id}/publish" in schema["paths"]
        assert not any(path.startswith("/admin/") for path in schema["paths"])

    def test_openapi_yaml(self, api_client):
        response = api_client.get("/api/docs/openapi.yaml")

        assert response.status_code == 200
        assert response["Content-Type"].startswith("application/vnd.oai.openapi")
        assert b"openapi:" in response.content

    def test_docs_ignore_bad_credentials(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer not-a-jwt")
        assert api_client.get("/api/docs/openapi.json").status_code == 200


class TestAdminActions:

    def test_suspend_users(self, user, other_user):
        from api.models import AppUser
        modeladmin = MagicMock()

        suspend_selected_users(modeladmin, MagicMock(), AppUser.objects.filter(pk__in=[user.pk, other_user.pk]))

        user.refresh_from_db()
        assert user.status == UserStatus.SUSPENDED
        modeladmin.message_user.assert_called_once()

    def test_retry_only_failed_deployments(self, website, user, django_capture_on_commit_callbacks):
        failed = create_deployment(website, user)
        failed.status = DeploymentStatus.FAILED
        failed.error_message = "boom"
        failed.save()
        succeeded = create_deployment(website, user)
        succeeded.status = DeploymentStatus.SUCCESS
        succeeded.save()

        with patch("api.admin.process_deployment_task.delay") as delay:
            with django_capture_on_commit_callbacks(execute=True):
                retry_selected_deployments(MagicMock(), MagicMock(), Deployment.objects.all())

        failed.refresh_from_db()
        assert failed.status == DeploymentStatus.QUEUED
        assert failed.error_message is None
        delay.assert_called_once_with(str(failed.pk))

    def test_retry_skips_website_with_active_deployment(self, website, user, django_capture_on_commit_callbacks):
        failed = create_deployment(website, user)
        failed.status = DeploymentStatus.FAILED
        failed.save()
        create_deployment(website, user)
        modeladmin = MagicMock()

        with patch("api.admin.process_deployment_task.delay") as delay:
            with django_capture_on_commit_callbacks(execute=True):
                retry_selected_deployments(modeladmin, MagicMock(), Deployment.objects.filter(pk=failed.pk))

        failed.refresh_from_db()
        assert failed.status == DeploymentStatus.FAILED
        delay.assert_not_called()
        assert Deployment.objects.filter(website=website, status=DeploymentStatus.QUEUED).count() == 1
        assert modeladmin.message_user.call_count == 2
