from celery import shared_task
from django.apps import apps


DEFAULT_SCHEDULES = {
    # Deployments stuck in the queue
    'queued_deployment_sweep': {
        'task': 'process_queued_deployments',
        'crontab': {'minute': '*/5'},  # Every 5 minutes
        'enabled': True,
        'expires': 240
    },
    # Domains still waiting for DNS
    'pending_domain_rechecks': {
        'task': 'recheck_pending_domains',
        'crontab': {'minute': 15, 'hour': '*'},  # Hourly at :15
        'enabled': True,
        'expires': 1800
    },
    # Daily maintenance
    'deployment_cleanup': {
        'task': 'cleanup_old_deployments',
        'crontab': {'hour': 3, 'minute': 0},  # 3 AM UTC
        'enabled': True,
        'expires': 3600
    },
}


def apply_schedules(crontab_model, periodic_task_model, schedules=None):
    """
    Creates or updates a PeriodicTask row for every entry in the schedule map.
    Shared by the data migration (historical models) and initialize_schedules.
    """
    schedules = schedules or DEFAULT_SCHEDULES

    for name, config in schedules.items():
        schedule, _ = crontab_model.objects.get_or_create(
            minute=str(config['crontab'].get('minute', '*')),
            hour=str(config['crontab'].get('hour', '*')),
            day_of_week=str(config['crontab'].get('day_of_week', '*')),
            day_of_month=str(config['crontab'].get('day_of_month', '*')),
            month_of_year=str(config['crontab'].get('month_of_year', '*')),
            timezone='UTC',
        )
        periodic_task_model.objects.update_or_create(
            name=name,
            defaults={
                'task': config['task'],
                'crontab': schedule,
                'enabled': config['enabled'],
                'expire_seconds': config['expires'],
            }
        )


@shared_task(name="initialize_schedules")
def initialize_schedules():
    CrontabSchedule = apps.get_model('django_celery_beat', 'CrontabSchedule')
    PeriodicTask = apps.get_model('django_celery_beat', 'PeriodicTask')
    apply_schedules(CrontabSchedule, PeriodicTask)
