import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from api.authentication import issue_tokens
from api.models import AppUser, PlanType, Template, UserRole, UserStatus, Website
from landingpad.celery import app as celery_app


PASSWORD = "Secret123"


def make_user(email, role=UserRole.USER, tier=PlanType.FREE, status=UserStatus.ACTIVE, **extra):
    user = AppUser(
        email=email,
        first_name=extra.pop("first_name", "Test"),
        last_name=extra.pop("last_name", "User"),
        role=role,
        subscription_tier=tier,
        status=status,
        email_verified=status != UserStatus.PENDING,
        **extra,
    )
    user.set_password(PASSWORD)
    user.save()
    return user


def auth_client(user):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_tokens(user)['accessToken']}")
    return client


@pytest.fixture(autouse=True)
def isolated_environment(settings, tmp_path):
    """Fresh cache (throttles, AI cache, admin stats) and a throwaway media root per test."""
    settings.MEDIA_ROOT = tmp_path / "media"
    settings.DEVELOPMENT_MODE = False
    settings.DOMAIN_HTTP_CHECK_ENABLED = False
    settings.WEBHOOK_SECRET = "test-webhook-secret"
    settings.WEBHOOK_SOURCE_SECRETS = {}
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.CELERY_TASK_ALWAYS_EAGER = True
    celery_app.conf.task_always_eager = True
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user(db):
    return make_user("owner@example.com")


@pytest.fixture
def other_user(db):
    return make_user("other@example.com", first_name="Other")


@pytest.fixture
def pro_user(db):
    return make_user("pro@example.com", tier=PlanType.PRO)


@pytest.fixture
def admin_user(db):
    return make_user("admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def user_client(user):
    return auth_client(user)


@pytest.fixture
def other_client(other_user):
    return auth_client(other_user)


@pytest.fixture
def pro_client(pro_user):
    return auth_client(pro_user)


@pytest.fixture
def admin_client(admin_user):
    return auth_client(admin_user)


@pytest.fixture
def template(db):
    return Template.objects.create(
        name="Starter",
        category="landing-page",
        description="Starter template",
        content={
            "pages": [
                {
                    "id": "home",
                    "name": "Home",
                    "slug": "home",
                    "isHome": True,
                    "elements": [
                        {"id": "hero", "type": "hero", "content": {"headline": "Hello there", "ctaText": "Go"}},
                    ],
                },
                {"id": "about", "name": "About", "slug": "about", "elements": []},
            ]
        },
        styles="body { margin: 0; }",
        settings={"colors": {"primary": "#111111"}, "fonts": {"heading": "Inter"}},
    )


@pytest.fixture
def website(user, template):
    website = Website(user=user, name="My Site")
    website.apply_template(template)
    website.save()
    return website


@pytest.fixture
def pro_website(pro_user, template):
    website = Website(user=pro_user, name="Pro Site")
    website.apply_template(template)
    website.save()
    return website
