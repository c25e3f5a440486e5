from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from marketplace import services
from marketplace.models import Skill, User


class RecalculateRatingsCommandTests(TestCase):
    def setUp(self):
        self.alice = User.objects.create_user(
            username='alice', email='alice@test.com', password='password', name='Alice'
        )
        self.bob = User.objects.create_user(
            username='bob', email='bob@test.com', password='password', name='Bob'
        )
        self.carol = User.objects.create_user(
            username='carol', email='carol@test.com', password='password', name='Carol'
        )

        for user, skill in ((self.alice, 'Guitar'), (self.bob, 'Painting'), (self.carol, 'Cooking')):
            Skill.objects.create(
                user=user,
                side=Skill.SIDE_OFFERED,
                name=skill,
                description=f'Weekly {skill} lessons for beginners',
            )

        # Alice and Carol both swap with Bob and rate him 5 and 3
        for requester, offered, stars in ((self.alice, 'Guitar', 5), (self.carol, 'Cooking', 3)):
            swap = services.create_swap_request(requester, self.bob.id, 'Painting', offered)
            services.accept_swap_request(swap.id, self.bob)
            services.complete_swap_request(swap.id, requester)
            services.submit_rating(swap.id, requester, stars)

        # Bob Actual Stats: Avg = 4.0, Count = 2, Completed = 2

        # Corrupt data intentionally
        User.objects.filter(pk=self.bob.pk).update(
            average_rating=Decimal('1.0'),
            total_ratings=99,
            completed_swaps=0,
        )
        User.objects.filter(pk=self.alice.pk).update(completed_swaps=7)

    def test_recalculate_all_aggregates(self):
        """Test full recalculation of ratings and completed swaps."""
        out = StringIO()
        call_command('recalculate_ratings', stdout=out)

        self.bob.refresh_from_db()
        self.alice.refresh_from_db()
        self.carol.refresh_from_db()

        self.assertEqual(self.bob.average_rating, Decimal('4.0'))
        self.assertEqual(self.bob.total_ratings, 2)
        self.assertEqual(self.bob.completed_swaps, 2)
        self.assertEqual(self.alice.completed_swaps, 1)
        self.assertEqual(self.carol.completed_swaps, 1)
        self.assertIn('Recalculation completed successfully. 2 users updated.', out.getvalue())

    def test_dry_run_changes_nothing(self):
        """Test that --dry-run reports differences without saving them."""
        out = StringIO()
        call_command('recalculate_ratings', '--dry-run', stdout=out)

        self.bob.refresh_from_db()
        self.alice.refresh_from_db()

        self.assertEqual(self.bob.average_rating, Decimal('1.0'))
        self.assertEqual(self.bob.total_ratings, 99)
        self.assertEqual(self.alice.completed_swaps, 7)

        output = out.getvalue()
        self.assertIn(f'[DRY-RUN] User {self.bob.id}', output)
        self.assertIn('total_ratings 99 -> 2', output)
        self.assertIn('2 users would change. No changes saved.', output)

    def test_ratings_only(self):
        """Test that --ratings-only leaves completed_swaps untouched."""
        call_command('recalculate_ratings', '--ratings-only', stdout=StringIO())

        self.bob.refresh_from_db()
        self.alice.refresh_from_db()

        self.assertEqual(self.bob.average_rating, Decimal('4.0'))
        self.assertEqual(self.bob.total_ratings, 2)
        self.assertEqual(self.bob.completed_swaps, 0)
        self.assertEqual(self.alice.completed_swaps, 7)

    def test_swaps_only(self):
        """Test that --swaps-only leaves rating aggregates untouched."""
        call_command('recalculate_ratings', '--swaps-only', stdout=StringIO())

        self.bob.refresh_from_db()
        self.alice.refresh_from_db()

        self.assertEqual(self.bob.average_rating, Decimal('1.0'))
        self.assertEqual(self.bob.total_ratings, 99)
        self.assertEqual(self.bob.completed_swaps, 2)
        self.assertEqual(self.alice.completed_swaps, 1)

    def test_consistent_data_is_left_alone(self):
        """Test that a second run finds nothing to fix."""
        call_command('recalculate_ratings', stdout=StringIO())
        out = StringIO()
        call_command('recalculate_ratings', stdout=out)

        self.assertIn('0 users updated.', out.getvalue())

    def test_small_batch_size(self):
        """Test that bulk updates are flushed across batches."""
        call_command('recalculate_ratings', '--batch-size', '1', stdout=StringIO())

        self.bob.refresh_from_db()
        self.alice.refresh_from_db()

        self.assertEqual(self.bob.total_ratings, 2)
        self.assertEqual(self.alice.completed_swaps, 1)
