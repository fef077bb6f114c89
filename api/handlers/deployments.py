import logging
import posixpath
import socket
import time

import requests
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db import DatabaseError
from django.template.loader import render_to_string
from django.utils import timezone

from api.models import ACTIVE_DEPLOYMENT_STATUSES, Deployment, DeploymentStatus
from api.utils import build_version

logger = logging.getLogger(__name__)


class DeploymentBuildError(Exception):
    pass


RETRYABLE_DEPLOYMENT_ERRORS = {"network_error", "timeout", "provider_unavailable", "resource_conflict"}
RETRYABLE_DOMAIN_ERRORS = {"network_error", "dns_propagation_delay", "timeout"}


# ============================================
# Deployment helpers
# ============================================
def has_active_deployments(website):
    return Deployment.objects.filter(website=website, status__in=ACTIVE_DEPLOYMENT_STATUSES).exists()


def create_deployment(website, user, commit_message=None):
    version = build_version()

    # Two publishes inside the same minute would share a build directory
    same_minute = Deployment.objects.filter(website=website, version__startswith=version).count()
    if same_minute:
        version = f"{version}-{same_minute + 1}"

    deployment = Deployment.objects.create(
        website=website,
        user=user,
        version=version,
        status=DeploymentStatus.QUEUED,
        commit_message=commit_message or "User initiated deployment",
    )
    logger.info(f"Deployment {deployment.pk} (v{version}) queued for website {website.pk}")
    return deployment


def get_deployments(website):
    """Newest first. Callers paginate."""
    return Deployment.objects.filter(website=website).order_by('-created_at')


def get_latest_successful_deployment(website):
    return (
        Deployment.objects
        .filter(website=website, status=DeploymentStatus.SUCCESS)
        .order_by('-created_at')
        .first()
    )


def build_directory(website, version):
    return f"sites/{website.slug}/{version}"


def delete_build_artifacts(deployment):
    """Removes the built files of one deployment. Returns the number of files removed."""
    directory = build_directory(deployment.website, deployment.version)
    try:
        _, files = default_storage.listdir(directory)
    except (FileNotFoundError, NotImplementedError):
        return 0

    for name in files:
        default_storage.delete(posixpath.join(directory, name))
    return len(files)


# ============================================
# Static site builder
# ============================================
class SiteBuilder:
    """
    Renders a website's pages to static HTML in the default storage:

        sites/<slug>/<version>/index.html      (home page)
        sites/<slug>/<version>/<page-slug>.html
        sites/<slug>/<version>/styles.css
    """
    template_name = "sites/page.html"

    def __init__(self, storage=None):
        self.storage = storage or default_storage

    @staticmethod
    def page_filename(page, is_home):
        return "index.html" if is_home else f"{page['slug']}.html"

    @staticmethod
    def normalize_element(element):
        # The editor has stored element data under both 'content' and 'props'
        data = element.get("content") or element.get("props") or {}
        return {
            "id": element.get("id", ""),
            "type": element.get("type", "text"),
            "content": data if isinstance(data, dict) else {"content": data},
        }

    def build_css(self, website):
        colors = (website.settings or {}).get("colors", {})
        fonts = (website.settings or {}).get("fonts", {})

        variables = [f"  --color-{name}: {value};" for name, value in colors.items()]
        variables += [f"  --font-{name}: '{value}', sans-serif;" for name, value in fonts.items()]

        root = ":root {\n" + "\n".join(variables) + "\n}\n" if variables else ""
        return root + (website.styles or "")

    def _write(self, path, data):
        if self.storage.exists(path):
            self.storage.delete(path)
        return self.storage.save(path, ContentFile(data.encode("utf-8")))

    def build(self, deployment):
        website = deployment.website
        pages = (website.content or {}).get("pages") or []

        if not pages:
            raise DeploymentBuildError("Validation failed: website has no pages to build")

        directory = build_directory(website, deployment.version)
        home_index = next((i for i, p in enumerate(pages) if p.get("isHome")), 0)

        nav = [
            {"name": page.get("name", page.get("slug")), "href": self.page_filename(page, i == home_index)}
            for i, page in enumerate(pages)
        ]

        written = []
        deployment.append_log(f"Building {len(pages)} page(s) for {website.slug} v{deployment.version}")

        for index, page in enumerate(pages):
            if not page.get("slug"):
                raise DeploymentBuildError(f"Validation failed: page at index {index} has no slug")

            filename = self.page_filename(page, index == home_index)
            html = render_to_string(self.template_name, {
                "website": website,
                "page": page,
                "elements": [self.normalize_element(e) for e in page.get("elements", [])],
                "nav": nav,
                "settings": website.settings or {},
                "stylesheet": "styles.css",
            })
            written.append(self._write(f"{directory}/{filename}", html))
            deployment.append_log(f"Rendered {filename}")

        written.append(self._write(f"{directory}/styles.css", self.build_css(website)))
        deployment.append_log("Wrote styles.css")

        return written


# ============================================
# Error categories
# ============================================
def _status_code(exc):
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None)


def categorize_deployment_error(exc):
    message = str(exc).lower()
    status_code = _status_code(exc)

    if isinstance(exc, (requests.ConnectionError, ConnectionError)) or "network" in message or "connection" in message:
        return "network_error"
    if isinstance(exc, (requests.Timeout, TimeoutError, socket.timeout)) or "timeout" in message or "timed out" in message:
        return "timeout"
    if status_code in (401, 403) or any(w in message for w in ("unauthorized", "authentication", "token")):
        return "authentication_error"
    if status_code == 429 or "rate limit" in message or "too many requests" in message:
        return "rate_limit"
    if status_code in (400, 422) or "validation" in message or "invalid" in message:
        return "validation_error"
    if status_code == 404 or "not found" in message:
        return "resource_not_found"
    if status_code == 409 or "conflict" in message:
        return "resource_conflict"
    if status_code is not None and status_code >= 500:
        return "provider_unavailable"
    if "vercel" in message or "provider" in message:
        return "provider_error"
    if isinstance(exc, DatabaseError) or "database" in message or "sql" in message:
        return "database_error"
    if isinstance(exc, OSError) or any(w in message for w in ("no such file", "directory", "permission")):
        return "filesystem_error"
    return "unknown_error"


def categorize_domain_error(exc_or_message):
    message = str(exc_or_message).lower()

    if any(w in message for w in ("dns", "propagation", "txt record", "cname", "no a record")):
        return "dns_propagation_delay"
    if "http verification" in message or "site not reachable" in message:
        return "http_verification_error"
    if any(w in message for w in ("ownership", "already claimed", "not authorized")):
        return "ownership_verification_error"
    if any(w in message for w in ("ssl", "tls", "certificate")):
        return "ssl_error"
    if "registrar" in message or "provider" in message:
        return "domain_provider_error"
    if isinstance(exc_or_message, requests.ConnectionError) or "network" in message or "connection" in message:
        return "network_error"
    if isinstance(exc_or_message, requests.Timeout) or "timeout" in message:
        return "timeout"
    if "rate limit" in message or "too many requests" in message:
        return "rate_limit"
    if any(w in message for w in ("invalid", "malformed", "incorrect")):
        return "bad_dns_configuration"
    return "unknown_domain_error"


def is_retryable_deployment_error(category):
    return category in RETRYABLE_DEPLOYMENT_ERRORS


def is_retryable_domain_error(category):
    return category in RETRYABLE_DOMAIN_ERRORS


# ============================================
# Notifications
# ============================================
def notify_deployment_status(deployment):
    """
    Logs the outcome and, when the website has a webhook_url, POSTs it there.
    Never raises.
    """
    website = deployment.website
    try:
        if deployment.status == DeploymentStatus.SUCCESS:
            logger.info(
                f"Deployment of {website.name} completed successfully. URL: {deployment.deployment_url}"
            )
        else:
            logger.info(
                f"Deployment of {website.name} {deployment.status}. "
                f"Error: {deployment.error_category}: {deployment.error_message}"
            )

        if not website.webhook_url:
            return

        payload = {
            "event": f"deployment.{deployment.status}",
            "deployment": {
                "id": str(deployment.pk),
                "websiteId": str(website.pk),
                "websiteName": website.name,
                "status": deployment.status,
                "version": deployment.version,
                "url": deployment.deployment_url,
                "error": {
                    "category": deployment.error_category,
                    "message": deployment.error_message,
                } if deployment.status == DeploymentStatus.FAILED else None,
                "timestamp": timezone.now().isoformat(),
            },
        }
        response = requests.post(website.webhook_url, json=payload, timeout=10)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Failed to send webhook notification for deployment {deployment.pk}: {e}")


def elapsed_ms(started):
    return int((time.monotonic() - started) * 1000)
