import logging
import time
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.core.cache import cache
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from .handlers.deployments import (
    SiteBuilder,
    categorize_deployment_error,
    categorize_domain_error,
    delete_build_artifacts,
    elapsed_ms,
    is_retryable_deployment_error,
    is_retryable_domain_error,
    notify_deployment_status,
)
from .handlers.domains import DomainVerificationError, DomainVerifier
from .models import (
    Deployment,
    DeploymentStatus,
    Domain,
    FINISHED_DEPLOYMENT_STATUSES,
    VerificationStatus,
    Website,
    WebsiteStatus,
)

logger = logging.getLogger(__name__)


DEPLOYMENT_MAX_RETRIES = 3
DOMAIN_MAX_RETRIES = 5
STALE_QUEUED_AFTER = timedelta(minutes=10)
DEPLOYMENT_RETENTION = timedelta(days=7)
DOMAIN_RECHECK_AFTER = timedelta(hours=1)


# ============================================
# Deployments
# ============================================
@shared_task(bind=True, name="process_deployment", max_retries=DEPLOYMENT_MAX_RETRIES, time_limit=600, ignore_result=True)
def process_deployment_task(self, deployment_id):
    """
    Builds one deployment.

    Transient failures (network, timeout, provider outage, conflict) send the
    deployment back to the queue and retry after 5, 10 and 20 seconds. Any
    other failure, or running out of retries, marks it failed.
    """
    try:
        deployment = Deployment.objects.select_related('website').get(pk=deployment_id)
    except Deployment.DoesNotExist:
        logger.warning(f"Deployment {deployment_id} no longer exists, skipping")
        return

    if deployment.status in FINISHED_DEPLOYMENT_STATUSES:
        logger.info(f"Deployment {deployment_id} is already {deployment.status}, skipping")
        return

    deployment.status = DeploymentStatus.IN_PROGRESS
    deployment.attempts += 1
    deployment.append_log(f"Attempt {deployment.attempts} started")
    deployment.save(update_fields=['status', 'attempts', 'build_logs', 'updated_at'])

    started = time.monotonic()

    try:
        SiteBuilder().build(deployment)
    except Exception as e:
        category = categorize_deployment_error(e)
        deployment.append_log(f"Build failed ({category}): {e}")
        now = timezone.now()
        # Only an in-progress row is ours to update; a cancel issued mid-build wins
        in_progress = Deployment.objects.filter(pk=deployment.pk, status=DeploymentStatus.IN_PROGRESS)

        if is_retryable_deployment_error(category) and self.request.retries < self.max_retries:
            countdown = 5 * (2 ** self.request.retries)
            deployment.append_log(f"Retrying in {countdown}s")
            requeued = in_progress.update(
                status=DeploymentStatus.QUEUED,
                build_logs=deployment.build_logs,
                error_message=str(e),
                error_category=category,
                updated_at=now,
            )
            if not requeued:
                logger.info(f"Deployment {deployment_id} was canceled during the build, not retrying")
                return
            logger.warning(f"Deployment {deployment_id} failed with {category}, retrying in {countdown}s")
            raise self.retry(exc=e, countdown=countdown)

        failed = in_progress.update(
            status=DeploymentStatus.FAILED,
            build_time=elapsed_ms(started),
            completed_at=now,
            build_logs=deployment.build_logs,
            error_message=str(e),
            error_category=category,
            updated_at=now,
        )
        if not failed:
            logger.info(f"Deployment {deployment_id} was canceled during the build, failure discarded")
            return

        logger.error(f"Deployment {deployment_id} failed permanently ({category}): {e}")
        deployment.refresh_from_db()
        notify_deployment_status(deployment)
        return

    website = deployment.website
    now = timezone.now()

    with transaction.atomic():
        # A cancel issued mid-build wins over the finished build
        updated = Deployment.objects.filter(pk=deployment.pk, status=DeploymentStatus.IN_PROGRESS).update(
            status=DeploymentStatus.SUCCESS,
            build_time=elapsed_ms(started),
            completed_at=now,
            deployment_url=website.default_url,
            build_logs=deployment.build_logs + f"[{now:%H:%M:%S}] Deployment completed\n",
            error_message=None,
            error_category=None,
            updated_at=now,
        )
        if updated:
            Website.objects.filter(pk=website.pk).update(
                status=WebsiteStatus.PUBLISHED,
                public_url=website.default_url,
                last_deployed_at=now,
                last_successful_deployment=deployment,
                updated_at=now,
            )

    deployment.refresh_from_db()
    if updated:
        logger.info(f"Deployment {deployment_id} succeeded in {deployment.build_time}ms")
    else:
        logger.info(f"Deployment {deployment_id} was {deployment.status} during the build, result discarded")
    notify_deployment_status(deployment)


@shared_task(bind=True, name="process_queued_deployments", time_limit=300, ignore_result=True)
def process_queued_deployments_task(self):
    """Re-dispatches deployments that sat in the queue for too long."""
    lock_key = "process_queued_deployments_lock"

    if not cache.add(lock_key, "locked", timeout=280):
        logger.warning("Queued deployment sweep already running")
        return 0

    try:
        cutoff = timezone.now() - STALE_QUEUED_AFTER
        stale_ids = list(
            Deployment.objects
            .filter(status=DeploymentStatus.QUEUED, updated_at__lt=cutoff)
            .values_list('id', flat=True)
        )

        for deployment_id in stale_ids:
            process_deployment_task.delay(str(deployment_id))

        if stale_ids:
            logger.info(f"Re-dispatched {len(stale_ids)} stale queued deployment(s)")
        return len(stale_ids)
    finally:
        cache.delete(lock_key)


@shared_task(bind=True, name="cleanup_old_deployments", time_limit=1800, ignore_result=True)
def cleanup_old_deployments_task(self):
    """
    Daily: removes build artifacts older than the retention window and deletes
    old failed or canceled deployment rows. Each website's last successful
    deployment is never touched.
    """
    cutoff = timezone.now() - DEPLOYMENT_RETENTION
    keep_ids = set(
        Website.objects
        .exclude(last_successful_deployment__isnull=True)
        .values_list('last_successful_deployment_id', flat=True)
    )

    old = (
        Deployment.objects
        .select_related('website')
        .filter(created_at__lt=cutoff, status__in=FINISHED_DEPLOYMENT_STATUSES)
        .exclude(id__in=keep_ids)
    )

    files_removed = 0
    for deployment in old.iterator():
        files_removed += delete_build_artifacts(deployment)

    deleted, _ = old.filter(status__in=[DeploymentStatus.FAILED, DeploymentStatus.CANCELED]).delete()

    logger.info(f"Deployment cleanup: {files_removed} file(s) and {deleted} row(s) removed")
    return {"files": files_removed, "deployments": deleted}


# ============================================
# Domains
# ============================================
@shared_task(bind=True, name="verify_domain", max_retries=DOMAIN_MAX_RETRIES, time_limit=300, ignore_result=True)
def verify_domain_task(self, domain_id):
    try:
        domain = Domain.objects.select_related('website').get(pk=domain_id)
    except Domain.DoesNotExist:
        logger.warning(f"Domain {domain_id} no longer exists, skipping verification")
        return None

    result = DomainVerifier().verify(domain)
    if result["verified"]:
        return result

    category = categorize_domain_error(domain.verification_errors or "")
    if is_retryable_domain_error(category) and self.request.retries < self.max_retries:
        countdown = 10 * (2 ** self.request.retries)
        logger.info(f"Domain {domain.name} not verified yet ({category}), retrying in {countdown}s")
        raise self.retry(exc=DomainVerificationError(domain.verification_errors), countdown=countdown)

    logger.warning(f"Domain {domain.name} verification failed ({category}): {domain.verification_errors}")
    return result


@shared_task(bind=True, name="recheck_pending_domains", time_limit=600, ignore_result=True)
def recheck_pending_domains_task(self):
    cutoff = timezone.now() - DOMAIN_RECHECK_AFTER
    domain_ids = list(
        Domain.objects
        .filter(verification_status__in=[VerificationStatus.PENDING, VerificationStatus.FAILED])
        .filter(Q(last_verified_at__isnull=True) | Q(last_verified_at__lt=cutoff))
        .filter(updated_at__lt=cutoff)
        .values_list('id', flat=True)
    )

    for domain_id in domain_ids:
        verify_domain_task.delay(str(domain_id))

    logger.info(f"Queued verification for {len(domain_ids)} pending domain(s)")
    return len(domain_ids)


# ============================================
# Email
# ============================================
@shared_task(bind=True, name="send_email", max_retries=3, default_retry_delay=60, ignore_result=True)
def send_email_task(self, subject, message, recipient_list, html_message=None):
    try:
        send_mail(
            subject,
            message,
            settings.DEFAULT_FROM_EMAIL,
            recipient_list,
            html_message=html_message,
        )
        logger.info(f"Email '{subject}' sent to {', '.join(recipient_list)}")
    except Exception as e:
        logger.error(f"Sending email '{subject}' failed: {e}")
        raise self.retry(exc=e)
