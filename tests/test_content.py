"""
Tests for the reusable content library.
"""

import json

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from api.models import Content, ContentStatus, ContentType


pytestmark = pytest.mark.django_db


def make_content(user, title="Hero block", **extra):
    extra.setdefault("type", ContentType.SECTION)
    return Content.objects.create(user=user, title=title, **extra)


class TestContentModel:

    def test_slug_gets_numeric_suffix(self, user):
        first = make_content(user, "Pricing Table")
        second = make_content(user, "Pricing Table")

        assert first.slug == "pricing-table"
        assert second.slug == "pricing-table-1"

    def test_published_at_set_once(self, user):
        content = make_content(user, status=ContentStatus.PUBLISHED)
        published_at = content.published_at
        assert published_at is not None

        content.status = ContentStatus.DRAFT
        content.save()
        content.status = ContentStatus.PUBLISHED
        content.save()
        assert content.published_at == published_at


class TestContentEndpoints:

    def test_create(self, user_client, website):
        response = user_client.post("/api/content", {
            "title": "Hero",
            "type": "section",
            "websiteId": str(website.pk),
            "tags": ["hero", " hero ", "", "dark"],
        }, format="json")

        assert response.status_code == 201
        assert response.data["tags"] == ["hero", "dark"]
        assert response.data["status"] == "draft"

    def test_cannot_attach_to_foreign_website(self, other_client, website):
        response = other_client.post("/api/content", {
            "title": "Sneaky",
            "type": "page",
            "websiteId": str(website.pk),
        }, format="json")
        assert response.status_code == 400

    def test_list_shows_own_and_published(self, user_client, user, other_user):
        mine = make_content(user, "Mine")
        published = make_content(other_user, "Shared", status=ContentStatus.PUBLISHED)
        make_content(other_user, "Private")

        response = user_client.get("/api/content")

        titles = {item["title"] for item in response.data["results"]}
        assert titles == {mine.title, published.title}

    def test_admin_sees_everything(self, admin_client, user, other_user):
        make_content(user, "A")
        make_content(other_user, "B")
        assert admin_client.get("/api/content").data["count"] == 2

    def test_filters(self, user_client, user, website):
        make_content(user, "Page one", type=ContentType.PAGE, tags=["landing"])
        make_content(user, "Section", type=ContentType.SECTION, tags=["footer", "dark"], website=website)

        assert user_client.get("/api/content", {"type": "page"}).data["count"] == 1
        assert user_client.get("/api/content", {"type": "all"}).data["count"] == 2
        assert user_client.get("/api/content", {"tags": "dark,landing"}).data["count"] == 2
        assert user_client.get("/api/content", {"tags": "footer"}).data["count"] == 1
        assert user_client.get("/api/content", {"websiteId": str(website.pk)}).data["count"] == 1
        assert user_client.get("/api/content", {"search": "one"}).data["count"] == 1

    def test_default_page_size(self, user_client, user):
        for i in range(14):
            make_content(user, f"Item {i}")

        response = user_client.get("/api/content")
        assert len(response.data["results"]) == 12
        assert response.data["count"] == 14

    def test_detail_visibility(self, other_client, user):
        draft = make_content(user, "Draft")
        published = make_content(user, "Live", status=ContentStatus.PUBLISHED)

        assert other_client.get(f"/api/content/{draft.pk}").status_code == 404
        assert other_client.get(f"/api/content/{published.pk}").status_code == 200

    def test_non_owner_cannot_modify_published(self, other_client, user):
        published = make_content(user, "Live", status=ContentStatus.PUBLISHED)

        assert other_client.patch(f"/api/content/{published.pk}", {"title": "Hijack"}, format="json").status_code == 403
        assert other_client.delete(f"/api/content/{published.pk}").status_code == 403

    def test_cannot_delete_with_children(self, user_client, user):
        parent = make_content(user, "Parent")
        make_content(user, "Child", parent=parent)

        response = user_client.delete(f"/api/content/{parent.pk}")
        assert response.status_code == 400
        assert Content.objects.filter(pk=parent.pk).exists()

    def test_cannot_be_own_parent(self, user_client, user):
        content = make_content(user)
        response = user_client.patch(f"/api/content/{content.pk}", {"parentId": str(content.pk)}, format="json")
        assert response.status_code == 400

    def test_cannot_attach_child_to_foreign_content(self, user_client, other_client, user):
        published = make_content(user, "Shared", status=ContentStatus.PUBLISHED)

        response = other_client.post("/api/content", {
            "title": "Squatter",
            "type": "section",
            "parentId": str(published.pk),
        }, format="json")

        assert response.status_code == 400
        assert response.data["error"]["parentId"] == ["Parent content not found."]
        assert user_client.delete(f"/api/content/{published.pk}").status_code == 204

    def test_admin_can_attach_child_to_any_content(self, admin_client, user):
        parent = make_content(user, "Owned")

        response = admin_client.post("/api/content", {
            "title": "Child",
            "type": "component",
            "parentId": str(parent.pk),
        }, format="json")

        assert response.status_code == 201
        assert str(response.data["parentId"]) == str(parent.pk)

    def test_publish_and_unpublish(self, user_client, user):
        content = make_content(user)

        response = user_client.post(f"/api/content/{content.pk}/publish")
        assert response.data["content"]["status"] == "published"
        assert response.data["content"]["published_at"] is not None

        response = user_client.post(f"/api/content/{content.pk}/unpublish")
        assert response.data["content"]["status"] == "draft"

    def test_clone(self, other_client, user, other_user):
        source = make_content(user, "Shared", status=ContentStatus.PUBLISHED, tags=["a"])

        response = other_client.post(f"/api/content/{source.pk}/clone")

        assert response.status_code == 201
        assert response.data["title"] == "Shared (Copy)"
        assert response.data["status"] == "draft"
        assert response.data["owner"] == str(other_user.pk)

    def test_clone_with_title(self, user_client, user):
        source = make_content(user, "Mine")
        response = user_client.post(f"/api/content/{source.pk}/clone", {"title": "Renamed"}, format="json")
        assert response.data["title"] == "Renamed"

    def test_tags(self, user_client, user, other_user):
        make_content(user, "A", tags=["zeta", "alpha"])
        make_content(other_user, "B", tags=["hidden"])
        make_content(other_user, "C", tags=["alpha", "beta"], status=ContentStatus.PUBLISHED)

        response = user_client.get("/api/content/tags")
        assert response.data["tags"] == ["alpha", "beta", "zeta"]


class TestContentImport:

    def upload(self, client, payload, name="items.json", content_type="application/json"):
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        return client.post(
            "/api/content/import",
            {"file": SimpleUploadedFile(name, body, content_type=content_type)},
            format="multipart",
        )

    def test_import_list_skips_invalid(self, user_client):
        response = self.upload(user_client, [
            {"title": "Good", "type": "section", "tags": ["x"]},
            {"title": "Bad type", "type": "widget"},
            {"type": "page"},
        ])

        assert response.status_code == 201
        assert response.data["imported"] == 1
        assert response.data["skipped"] == 2
        assert Content.objects.get(title="Good").status == ContentStatus.DRAFT

    def test_import_wrapped_items(self, user_client):
        response = self.upload(user_client, {"items": [{"title": "One", "type": "page"}, {"title": "Two", "type": "component"}]})
        assert response.data["imported"] == 2

    def test_import_single_object(self, user_client):
        response = self.upload(user_client, {"title": "Solo", "type": "template", "status": "published"})
        assert response.data["imported"] == 1
        assert Content.objects.get(title="Solo").status == ContentStatus.DRAFT

    def test_non_json_rejected(self, user_client):
        response = self.upload(user_client, b"PK\x03\x04", name="items.zip", content_type="application/zip")
        assert response.status_code == 400

    def test_malformed_json_rejected(self, user_client):
        response = self.upload(user_client, b"{not json")
        assert response.status_code == 400
