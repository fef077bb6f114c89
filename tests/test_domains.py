"""
Tests for custom domains: CRUD endpoints, DNS/HTTP verification and the verification task.
"""

from types import SimpleNamespace
from unittest.mock import patch

import dns.resolver
import pytest
import requests

from api.handlers.domains import (
    DomainVerifier,
    check_domain_availability,
    create_domain,
    get_domain_by_name,
    set_primary_domain,
)
from api.models import Domain, DomainStatus, VerificationStatus
from api.tasks import recheck_pending_domains_task, verify_domain_task


pytestmark = pytest.mark.django_db


class FakeResolver:
    """Answers from a {(hostname, type): [values]} table; anything else is NXDOMAIN."""

    def __init__(self, table):
        self.table = table

    def resolve(self, hostname, record_type, lifetime=None):
        values = self.table.get((hostname, record_type))
        if values is None:
            raise dns.resolver.NXDOMAIN()
        answers = []
        for value in values:
            if record_type == "TXT":
                answers.append(SimpleNamespace(strings=[value.encode()]))
            elif record_type == "CNAME":
                answers.append(SimpleNamespace(target=f"{value}."))
            else:
                answers.append(value)
        return answers


def passing_resolver(domain):
    table = {(r["name"], r["type"]): [r["value"]] for r in domain.dns_records}
    return FakeResolver(table)


class TestDomainEndpoints:

    def test_free_plan_is_forbidden(self, user_client, website):
        response = user_client.get(f"/api/websites/{website.pk}/domains")
        assert response.status_code == 403

    def test_create_domain_with_dns_records(self, pro_client, pro_website, django_capture_on_commit_callbacks):
        with patch("api.views.verify_domain_task.delay") as delay:
            with django_capture_on_commit_callbacks(execute=True):
                response = pro_client.post(f"/api/websites/{pro_website.pk}/domains", {"name": "Example.com"}, format="json")

        assert response.status_code == 201
        assert response.data["name"] == "example.com"

        records = response.data["dnsRecords"]
        assert records[0] == {
            "type": "CNAME",
            "name": "www.example.com",
            "value": f"{pro_website.pk}.landingpad.digital",
            "ttl": 3600,
        }
        assert records[1]["type"] == "A"
        assert records[1]["value"] == "76.76.21.21"
        delay.assert_called_once_with(response.data["id"])

    def test_invalid_name(self, pro_client, pro_website):
        response = pro_client.post(f"/api/websites/{pro_website.pk}/domains", {"name": "not a domain"}, format="json")
        assert response.status_code == 400
        assert response.data["error"]["name"] == ["Invalid domain name format"]

    def test_name_in_use_anywhere(self, pro_client, pro_website, website, user):
        create_domain(website, user, "taken.com")

        response = pro_client.post(f"/api/websites/{pro_website.pk}/domains", {"name": "TAKEN.com"}, format="json")
        assert response.status_code == 400
        assert response.data["error"]["name"] == ["This domain is already in use"]

    def test_cannot_delete_primary_while_others_exist(self, pro_client, pro_website, pro_user):
        primary = create_domain(pro_website, pro_user, "one.com")
        create_domain(pro_website, pro_user, "two.com")
        set_primary_domain(pro_website, primary.pk)

        response = pro_client.delete(f"/api/websites/{pro_website.pk}/domains/{primary.pk}")
        assert response.status_code == 400

    def test_delete_domain(self, pro_client, pro_website, pro_user):
        domain = create_domain(pro_website, pro_user, "gone.com")
        response = pro_client.delete(f"/api/websites/{pro_website.pk}/domains/{domain.pk}")
        assert response.status_code == 204
        assert not Domain.objects.filter(pk=domain.pk).exists()

    def test_primary_requires_verified_domain(self, pro_client, pro_website, pro_user):
        domain = create_domain(pro_website, pro_user, "pending.com")
        response = pro_client.put(f"/api/websites/{pro_website.pk}/domains/{domain.pk}/primary")
        assert response.status_code == 400

    def test_set_primary(self, pro_client, pro_website, pro_user):
        first = create_domain(pro_website, pro_user, "first.com")
        second = create_domain(pro_website, pro_user, "second.com")
        Domain.objects.filter(pk__in=[first.pk, second.pk]).update(
            status=DomainStatus.ACTIVE, verification_status=VerificationStatus.VERIFIED
        )
        set_primary_domain(pro_website, first.pk)

        response = pro_client.put(f"/api/websites/{pro_website.pk}/domains/{second.pk}/primary")

        assert response.status_code == 200
        assert response.data["domain"]["isPrimary"] is True
        first.refresh_from_db()
        assert first.is_primary is False
        pro_website.refresh_from_db()
        assert pro_website.custom_domain == "second.com"

    def test_list_primary_first(self, pro_client, pro_website, pro_user):
        primary = create_domain(pro_website, pro_user, "primary.com")
        create_domain(pro_website, pro_user, "newer.com")
        set_primary_domain(pro_website, primary.pk)

        response = pro_client.get(f"/api/websites/{pro_website.pk}/domains")
        assert [d["name"] for d in response.data] == ["primary.com", "newer.com"]

    def test_verify_endpoint_runs_synchronously(self, pro_client, pro_website, pro_user):
        domain = create_domain(pro_website, pro_user, "sync.com")

        with patch("api.views.DomainVerifier", return_value=DomainVerifier(resolver=passing_resolver(domain))):
            response = pro_client.post(f"/api/websites/{pro_website.pk}/domains/{domain.pk}/verify")

        assert response.status_code == 200
        assert response.data["verification"]["verified"] is True
        assert response.data["domain"]["verificationStatus"] == "verified"

    def test_availability(self, user_client, website, user):
        create_domain(website, user, "used.com")

        assert user_client.get("/api/domains/availability", {"name": "free.com"}).data["available"] is True
        assert user_client.get("/api/domains/availability", {"name": "USED.com"}).data["available"] is False
        assert user_client.get("/api/domains/availability").status_code == 400


class TestDomainHelpers:

    def test_lookup_is_case_insensitive(self, website, user):
        domain = create_domain(website, user, "MixedCase.com")
        assert domain.name == "mixedcase.com"
        assert get_domain_by_name("MIXEDCASE.COM") == domain

    def test_availability_rejects_invalid_names(self, db):
        assert check_domain_availability("-bad-.com") == {"name": "-bad-.com", "valid": False, "available": False}

    def test_set_primary_on_foreign_domain_returns_false(self, website, pro_website, pro_user):
        foreign = create_domain(pro_website, pro_user, "foreign.com")
        assert set_primary_domain(website, foreign.pk) is False


class TestDomainVerifier:

    def test_generated_records(self, website, user):
        apex = create_domain(website, user, "apex.com")
        sub = create_domain(website, user, "shop.apex.com")
        verifier = DomainVerifier(resolver=FakeResolver({}))

        apex_types = [r["type"] for r in verifier.generate_dns_records(apex)]
        sub_types = [r["type"] for r in verifier.generate_dns_records(sub)]

        assert apex_types == ["CNAME", "TXT", "A"]
        assert sub_types == ["CNAME", "TXT"]

        txt = verifier.generate_dns_records(apex)[1]
        assert txt["name"] == "_landingpad-verification.apex.com"
        assert txt["value"].startswith("landingpad-verify=")
        assert len(txt["value"]) == len("landingpad-verify=") + 24

    def test_successful_verification_becomes_primary(self, website, user):
        domain = create_domain(website, user, "good.com")

        result = DomainVerifier(resolver=passing_resolver(domain)).verify(domain)

        assert result["verified"] is True
        domain.refresh_from_db()
        assert domain.status == DomainStatus.ACTIVE
        assert domain.verification_status == VerificationStatus.VERIFIED
        assert domain.verification_errors is None
        assert domain.last_verified_at is not None
        assert domain.is_primary is True
        website.refresh_from_db()
        assert website.custom_domain == "good.com"

    def test_missing_records_fail(self, website, user):
        domain = create_domain(website, user, "missing.com")

        result = DomainVerifier(resolver=FakeResolver({})).verify(domain)

        assert result["verified"] is False
        assert result["dnsVerified"] is False
        domain.refresh_from_db()
        assert domain.verification_status == VerificationStatus.FAILED
        assert domain.status == DomainStatus.ERROR
        assert "; " in domain.verification_errors

    def test_record_value_match_ignores_case_and_allows_contains(self, website, user):
        domain = create_domain(website, user, "case.com")
        verifier = DomainVerifier(resolver=FakeResolver({("case.com", "TXT"): ["prefix landingpad-verify=ABC suffix"]}))

        assert verifier.verify_dns_record({"type": "TXT", "name": "case.com", "value": "landingpad-verify=ABC"})["verified"]

    def test_http_check_requires_vercel_server(self, website, user, settings):
        settings.DOMAIN_HTTP_CHECK_ENABLED = True
        domain = create_domain(website, user, "http.com")
        verifier = DomainVerifier(resolver=passing_resolver(domain))

        with patch("api.handlers.domains.requests.get", return_value=SimpleNamespace(headers={"server": "nginx"})):
            result = verifier.verify(domain)
        assert result["verified"] is False
        assert result["dnsVerified"] is True

        with patch("api.handlers.domains.requests.get", return_value=SimpleNamespace(headers={"server": "Vercel"})):
            result = verifier.verify(domain)
        assert result["verified"] is True

    def test_http_errors_pass_in_development_mode(self, website, user, settings):
        settings.DOMAIN_HTTP_CHECK_ENABLED = True
        settings.DEVELOPMENT_MODE = True
        domain = create_domain(website, user, "dev.com")

        with patch("api.handlers.domains.requests.get", side_effect=requests.ConnectionError("refused")):
            ok, error = DomainVerifier(resolver=FakeResolver({})).verify_http(domain)

        assert ok is True
        assert error is None


class TestDomainTasks:

    def test_verify_task_retries_dns_failures(self, website, user):
        domain = create_domain(website, user, "slow.com")

        with patch("api.tasks.DomainVerifier", return_value=DomainVerifier(resolver=FakeResolver({}))) as verifier_cls:
            verify_domain_task.apply(args=[str(domain.pk)])

        # First run plus five retries
        assert verifier_cls.call_count == 6
        domain.refresh_from_db()
        assert domain.verification_status == VerificationStatus.FAILED

    def test_verify_task_for_missing_domain(self, db):
        assert verify_domain_task.apply(args=["00000000-0000-0000-0000-000000000000"]).result is None

    def test_recheck_pending_domains(self, website, user):
        from datetime import timedelta
        from django.utils import timezone

        old = create_domain(website, user, "old.com")
        create_domain(website, user, "fresh.com")
        Domain.objects.filter(pk=old.pk).update(updated_at=timezone.now() - timedelta(hours=2))

        with patch("api.tasks.verify_domain_task.delay") as delay:
            count = recheck_pending_domains_task()

        assert count == 1
        delay.assert_called_once_with(str(old.pk))
