from decimal import Decimal

from django.db import migrations

from landingpad.celery_schedules import DEFAULT_SCHEDULES, apply_schedules


PLANS = [
    {
        "plan_type": "free",
        "name": "Free Plan",
        "description": "Get started with a few sites on a Landing Pad subdomain.",
        "monthly_price": Decimal("0.00"),
        "website_limit": 3,
        "custom_domains": False,
        "features": [
            "Up to 3 websites",
            "Basic templates",
            "Landing Pad branding",
            "Community support",
        ],
    },
    {
        "plan_type": "pro",
        "name": "Pro Plan",
        "description": "More sites and your own domains.",
        "monthly_price": Decimal("12.00"),
        "website_limit": 10,
        "custom_domains": True,
        "features": [
            "Up to 10 websites",
            "All templates",
            "Custom domain support",
            "No Landing Pad branding",
            "Priority support",
        ],
    },
    {
        "plan_type": "enterprise",
        "name": "Enterprise Plan",
        "description": "Unlimited sites for teams.",
        "monthly_price": Decimal("49.00"),
        "website_limit": None,
        "custom_domains": True,
        "features": [
            "Unlimited websites",
            "All templates",
            "Custom domain support",
            "White-label option",
            "Team collaboration",
            "Dedicated support",
        ],
    },
]


def seed_plans(apps, schema_editor):
    PlanModel = apps.get_model("api", "PlanModel")
    for plan in PLANS:
        PlanModel.objects.update_or_create(
            plan_type=plan["plan_type"],
            defaults={k: v for k, v in plan.items() if k != "plan_type"},
        )


def remove_plans(apps, schema_editor):
    PlanModel = apps.get_model("api", "PlanModel")
    PlanModel.objects.filter(plan_type__in=[p["plan_type"] for p in PLANS]).delete()


def create_periodic_tasks(apps, schema_editor):
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    apply_schedules(CrontabSchedule, PeriodicTask)


def remove_periodic_tasks(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name__in=list(DEFAULT_SCHEDULES)).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("api", "0001_initial"),
        ("django_celery_beat", "0016_alter_crontabschedule_timezone"),
    ]

    operations = [
        migrations.RunPython(seed_plans, remove_plans),
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
