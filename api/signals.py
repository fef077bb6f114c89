import logging

from django.core.cache import cache
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import AppUser, Deployment, Domain, Image, Template, Website

logger = logging.getLogger(__name__)


ADMIN_STATS_CACHE_KEY = "admin_stats"


@receiver(post_delete, sender=Image)
def delete_image_file(sender, instance, **kwargs):
    """
    Removes the stored file once its Image row is gone.
    save=False keeps the FileField from trying to save the deleted row.
    """
    if instance.file:
        instance.file.delete(save=False)
        logger.info(f"Deleted stored file for image {instance.pk}")


# Admin dashboard numbers are cached briefly; drop them when the counted rows change
@receiver([post_save, post_delete], sender=AppUser)
@receiver([post_save, post_delete], sender=Website)
@receiver([post_save, post_delete], sender=Template)
@receiver([post_save, post_delete], sender=Deployment)
@receiver([post_save, post_delete], sender=Domain)
def clear_admin_stats_cache(sender, **kwargs):
    cache.delete(ADMIN_STATS_CACHE_KEY)
