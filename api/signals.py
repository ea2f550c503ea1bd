import logging

from django.db.models import F, IntegerField
from django.db.models.functions import Greatest
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
from .models import Favorite, Track

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Favorite)
def increment_track_likes(sender, instance, created, **kwargs):
    """Bump the denormalized like count when a favourite is added."""
    if created:
        Track.objects.filter(pk=instance.track_id).update(likes_count=F('likes_count') + 1)


@receiver(post_delete, sender=Favorite)
def decrement_track_likes(sender, instance, **kwargs):
    """Drop the like count when a favourite goes away, including cascades from user deletion."""
    updated = Track.objects.filter(pk=instance.track_id).update(
        likes_count=Greatest(F('likes_count') - 1, 0, output_field=IntegerField())
    )
    if not updated:
        # track itself is being deleted
        logger.debug("Favorite %s removed together with track %s", instance.pk, instance.track_id)
