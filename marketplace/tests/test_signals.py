"""
Tests for the signals that keep a user's rating aggregates in step with the
ratings they have received.
"""

from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.test import SimpleTestCase, TransactionTestCase

from marketplace import services
from marketplace.lifecycle import SwapStatus
from marketplace.models import Rating, Skill, SwapRequest

User = get_user_model()


class RatingSignalTests(TransactionTestCase):
    """
    Test suite for rating signal functionality.

    Uses TransactionTestCase so that rollback of a failed recompute can be
    observed from outside the transaction.
    """

    def setUp(self):
        self.mentor = User.objects.create_user(
            username='mentor',
            email='mentor@test.com',
            password='testpass123',
            name='Mentor'
        )
        Skill.objects.create(
            user=self.mentor,
            side=Skill.SIDE_OFFERED,
            name='Painting',
            description='Oil and watercolour painting basics',
            level='advanced'
        )

        self.learners = []
        self.swaps = []
        for index in range(3):
            learner = User.objects.create_user(
                username=f'learner{index}',
                email=f'learner{index}@test.com',
                password='testpass123',
                name=f'Learner {index}'
            )
            Skill.objects.create(
                user=learner,
                side=Skill.SIDE_OFFERED,
                name='Guitar',
                description='Acoustic guitar for complete beginners'
            )
            swap = services.create_swap_request(learner, self.mentor.id, 'Painting', 'Guitar')
            services.accept_swap_request(swap.id, self.mentor)
            swap = services.complete_swap_request(swap.id, learner)
            self.learners.append(learner)
            self.swaps.append(swap)

    def _rate(self, index, stars):
        return Rating.objects.create(
            swap_request=self.swaps[index],
            rater=self.learners[index],
            rated_user=self.mentor,
            rating=stars,
            skill_rated={'name': 'Painting', 'level': 'advanced'}
        )

    def test_creating_rating_updates_aggregates(self):
        self.mentor.refresh_from_db()
        self.assertEqual(self.mentor.average_rating, Decimal('0.0'))
        self.assertEqual(self.mentor.total_ratings, 0)

        self._rate(0, 4)

        self.mentor.refresh_from_db()
        self.assertEqual(self.mentor.average_rating, Decimal('4.0'))
        self.assertEqual(self.mentor.total_ratings, 1)

    def test_multiple_ratings_calculate_correct_average(self):
        # (5 + 3 + 4) / 3 = 4.0
        self._rate(0, 5)
        self._rate(1, 3)
        self._rate(2, 4)

        self.mentor.refresh_from_db()
        self.assertEqual(self.mentor.average_rating, Decimal('4.0'))
        self.assertEqual(self.mentor.total_ratings, 3)

    def test_average_is_rounded_to_one_decimal(self):
        # (5 + 4 + 4) / 3 = 4.333...
        self._rate(0, 5)
        self._rate(1, 4)
        self._rate(2, 4)

        self.mentor.refresh_from_db()
        self.assertEqual(self.mentor.average_rating, Decimal('4.3'))

    def test_updating_rating_recomputes(self):
        rating = self._rate(0, 2)

        rating.rating = 5
        rating.save()

        self.mentor.refresh_from_db()
        self.assertEqual(self.mentor.average_rating, Decimal('5.0'))
        self.assertEqual(self.mentor.total_ratings, 1)

    def test_deleting_rating_recomputes(self):
        first = self._rate(0, 5)
        self._rate(1, 1)

        first.delete()

        self.mentor.refresh_from_db()
        self.assertEqual(self.mentor.average_rating, Decimal('1.0'))
        self.assertEqual(self.mentor.total_ratings, 1)

    def test_deleting_last_rating_resets_to_zero(self):
        rating = self._rate(0, 3)

        rating.delete()

        self.mentor.refresh_from_db()
        self.assertEqual(self.mentor.average_rating, Decimal('0.0'))
        self.assertEqual(self.mentor.total_ratings, 0)

    def test_rater_aggregates_are_untouched(self):
        self._rate(0, 5)

        self.learners[0].refresh_from_db()
        self.assertEqual(self.learners[0].average_rating, Decimal('0.0'))
        self.assertEqual(self.learners[0].total_ratings, 0)

    def test_rating_uses_stored_swap_status(self):
        stale = SwapRequest.objects.get(pk=self.swaps[0].pk)
        stale.status = SwapStatus.PENDING

        Rating.objects.create(
            swap_request=stale,
            rater=self.learners[0],
            rated_user=self.mentor,
            rating=4,
            skill_rated={'name': 'Painting', 'level': 'advanced'}
        )

        self.mentor.refresh_from_db()
        self.assertEqual(self.mentor.total_ratings, 1)

    def test_swap_not_completed_in_database_is_refused(self):
        SwapRequest.objects.filter(pk=self.swaps[1].pk).update(status=SwapStatus.ACCEPTED)

        with self.assertRaises(ValidationError):
            self._rate(1, 5)

        self.assertFalse(Rating.objects.exists())

    def test_failed_recompute_rolls_back_rating(self):
        with patch(
            'marketplace.signals.recompute_user_rating',
            side_effect=RuntimeError('aggregate write failed')
        ):
            with self.assertLogs('marketplace.signals', 'ERROR'):
                with self.assertRaises(RuntimeError):
                    with transaction.atomic():
                        self._rate(0, 5)

        self.assertFalse(Rating.objects.exists())
        self.mentor.refresh_from_db()
        self.assertEqual(self.mentor.total_ratings, 0)


class RoundRatingTests(SimpleTestCase):

    def test_no_ratings(self):
        self.assertEqual(services.round_rating(None), Decimal('0.0'))

    def test_half_rounds_up(self):
        self.assertEqual(services.round_rating(4.25), Decimal('4.3'))
        self.assertEqual(services.round_rating(4.05), Decimal('4.1'))
        self.assertEqual(services.round_rating(Decimal('2.35')), Decimal('2.4'))

    def test_below_half_rounds_down(self):
        self.assertEqual(services.round_rating(3.333333333333333), Decimal('3.3'))
        self.assertEqual(services.round_rating(4.24), Decimal('4.2'))

    def test_whole_numbers(self):
        self.assertEqual(services.round_rating(5), Decimal('5.0'))
        self.assertEqual(services.round_rating(1.0), Decimal('1.0'))
