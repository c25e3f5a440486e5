"""
Django signals for automatic rating recalculation.

Ratings are the only source of a user's average_rating and total_ratings;
every create, update and delete of a Rating recomputes the rated user's
aggregates inside the same transaction as the mutation.
"""

import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Rating
from .services import recompute_user_rating

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Rating)
def update_ratings_on_rating_save(sender, instance, created, **kwargs):
    """
    Recompute the rated user's aggregates after a rating is saved.

    If the recompute fails the exception propagates and the surrounding
    transaction, including the rating write, is rolled back.
    """
    try:
        average, total = recompute_user_rating(instance.rated_user_id)
    except Exception as e:
        logger.error(
            f"Error updating ratings for rating {instance.id}: {e}",
            exc_info=True
        )
        raise

    action = "created" if created else "updated"
    logger.info(
        f"Updated ratings for rating {instance.id} ({action}): "
        f"rated_user={instance.rated_user_id}, average={average}, total={total}"
    )


@receiver(post_delete, sender=Rating)
def update_ratings_on_rating_delete(sender, instance, **kwargs):
    """Recompute the rated user's aggregates after a rating is deleted."""
    try:
        average, total = recompute_user_rating(instance.rated_user_id)
    except Exception as e:
        logger.error(
            f"Error updating ratings after deleting rating {instance.id}: {e}",
            exc_info=True
        )
        raise

    logger.info(
        f"Updated ratings after deleting rating {instance.id}: "
        f"rated_user={instance.rated_user_id}, average={average}, total={total}"
    )
