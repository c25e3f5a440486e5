# Recalculate Ratings Management Command
from django.core.management.base import BaseCommand
from django.db.models import Avg, Count, Q

from marketplace.lifecycle import SwapStatus
from marketplace.models import Rating, SwapRequest, User
from marketplace.services import round_rating


class Command(BaseCommand):
    help = 'Recalculates user rating aggregates and completed swap counts to ensure data consistency.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run the command without saving changes to the database.',
        )
        parser.add_argument(
            '--ratings-only',
            action='store_true',
            help='Recalculate only average_rating and total_ratings.',
        )
        parser.add_argument(
            '--swaps-only',
            action='store_true',
            help='Recalculate only completed_swaps.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Batch size for bulk processing.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        fields = []
        if not options['swaps_only']:
            fields += ['average_rating', 'total_ratings']
        if not options['ratings_only']:
            fields.append('completed_swaps')

        changed = self.recalculate_users(fields, dry_run, batch_size)

        if dry_run:
            self.stdout.write(self.style.SUCCESS(
                f'Dry run completed. {changed} users would change. No changes saved.'
            ))
        else:
            self.stdout.write(self.style.SUCCESS(
                f'Recalculation completed successfully. {changed} users updated.'
            ))

    def expected_values(self, user):
        values = {}

        stats = Rating.objects.filter(rated_user=user).aggregate(
            avg_rating=Avg('rating'),
            total=Count('id'),
        )
        values['average_rating'] = round_rating(stats['avg_rating'])
        values['total_ratings'] = stats['total'] or 0

        values['completed_swaps'] = SwapRequest.objects.filter(
            Q(requester=user) | Q(recipient=user),
            status=SwapStatus.COMPLETED,
        ).count()

        return values

    def recalculate_users(self, fields, dry_run, batch_size):
        self.stdout.write('Recalculating user aggregates...')
        users = User.objects.order_by('pk').iterator(chunk_size=batch_size)
        updates = []
        count = 0
        changed = 0

        for user in users:
            expected = self.expected_values(user)
            diffs = {
                field: (getattr(user, field), expected[field])
                for field in fields
                if getattr(user, field) != expected[field]
            }

            if diffs:
                changed += 1
                if dry_run:
                    summary = ', '.join(f'{field} {old} -> {new}' for field, (old, new) in diffs.items())
                    self.stdout.write(f'  [DRY-RUN] User {user.id} ({user.email}): {summary}')
                else:
                    for field, (_old, new) in diffs.items():
                        setattr(user, field, new)
                    updates.append(user)

            if len(updates) >= batch_size:
                User.objects.bulk_update(updates, fields)
                updates = []

            count += 1
            if count % 100 == 0:
                self.stdout.write(f'Processed {count} users...')

        if updates:
            User.objects.bulk_update(updates, fields)

        self.stdout.write(f'Processed {count} users total.')
        return changed
