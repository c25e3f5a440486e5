"""
Test suite for the administration endpoints: dashboard, user moderation,
swap oversight, activity logs and skill moderation.
"""

from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken
from rest_framework_simplejwt.tokens import RefreshToken

from marketplace import services
from marketplace.models import ActivityLog, Skill


User = get_user_model()


def make_user(username, **extra):
    return User.objects.create_user(
        username=username,
        email=f'{username}@test.com',
        password='testpass123',
        name=username.title(),
        **extra
    )


def offer(user, name):
    return Skill.objects.create(
        user=user,
        side=Skill.SIDE_OFFERED,
        name=name,
        description=f'I can teach {name} to beginners',
    )


class AdminTestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = make_user('admin', is_staff=True)
        self.alice = make_user('alice', location='London')
        self.bob = make_user('bob', location='Paris')
        self.client.force_authenticate(user=self.admin)


class AdminAccessTests(AdminTestCase):

    def test_non_staff_is_refused_everywhere(self):
        self.client.force_authenticate(user=self.alice)

        for method, url in (
            ('get', '/api/admin/dashboard/'),
            ('get', '/api/admin/users/'),
            ('post', f'/api/admin/users/{self.bob.id}/ban/'),
            ('post', f'/api/admin/users/{self.bob.id}/unban/'),
            ('get', '/api/admin/swaps/'),
            ('get', '/api/admin/activity-logs/'),
            ('post', '/api/admin/moderate-skill/'),
        ):
            response = getattr(self.client, method)(url, {}, format='json')
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, url)

    def test_anonymous_is_refused(self):
        self.client.force_authenticate(user=None)

        response = self.client.get('/api/admin/dashboard/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class DashboardTests(AdminTestCase):

    def test_dashboard_counts(self):
        offer(self.alice, 'Guitar')
        offer(self.bob, 'Painting')
        services.create_swap_request(self.alice, self.bob.id, 'Painting', 'Guitar')
        make_user('mallory', is_banned=True, ban_reason='Spam messages sent')

        response = self.client.get('/api/admin/dashboard/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['users']['total'], 4)
        self.assertEqual(response.data['users']['banned'], 1)
        self.assertEqual(response.data['users']['active'], 3)
        self.assertEqual(response.data['swaps']['total'], 1)
        self.assertEqual(response.data['swaps']['pending'], 1)
        self.assertEqual(response.data['swaps']['completed'], 0)
        self.assertEqual(response.data['activity_by_action'], {'swap_request_created': 1})
        self.assertEqual(len(response.data['recent_activity']), 1)
        self.assertEqual(response.data['recent_activity'][0]['action'], 'swap_request_created')


class AdminUserListTests(AdminTestCase):

    def test_lists_all_users_including_private_and_banned(self):
        make_user('carol', is_profile_public=False)
        make_user('dave', is_banned=True, ban_reason='Spam messages sent')

        response = self.client.get('/api/admin/users/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 5)

    def test_search(self):
        response = self.client.get('/api/admin/users/', {'search': 'paris'})

        ids = [item['id'] for item in response.data['results']]
        self.assertEqual(ids, [self.bob.id])

    def test_filter_by_ban_status(self):
        make_user('dave', is_banned=True, ban_reason='Spam messages sent')

        response = self.client.get('/api/admin/users/', {'is_banned': 'true'})

        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['ban_reason'], 'Spam messages sent')


class BanUserTests(AdminTestCase):

    def test_ban_user(self):
        response = self.client.post(
            f'/api/admin/users/{self.alice.id}/ban/',
            {'reason': 'Repeated no-shows for agreed swaps'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_banned'])
        self.alice.refresh_from_db()
        self.assertTrue(self.alice.is_banned)
        self.assertEqual(self.alice.ban_reason, 'Repeated no-shows for agreed swaps')

        log = ActivityLog.objects.get(action='user_banned')
        self.assertEqual(log.user, self.admin)
        self.assertEqual(log.target_user, self.alice)
        self.assertEqual(log.details['ban_reason'], 'Repeated no-shows for agreed swaps')

    def test_ban_reason_too_short(self):
        response = self.client.post(
            f'/api/admin/users/{self.alice.id}/ban/', {'reason': 'rude'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.alice.refresh_from_db()
        self.assertFalse(self.alice.is_banned)

    def test_cannot_ban_staff(self):
        other_admin = make_user('moderator', is_staff=True)

        response = self.client.post(
            f'/api/admin/users/{other_admin.id}/ban/',
            {'reason': 'Testing staff protection rule'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'validation')

    def test_ban_unknown_user(self):
        response = self.client.post(
            '/api/admin/users/999999/ban/',
            {'reason': 'Repeated no-shows for agreed swaps'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_ban_revokes_refresh_tokens(self):
        refresh = RefreshToken.for_user(self.alice)

        self.client.post(
            f'/api/admin/users/{self.alice.id}/ban/',
            {'reason': 'Repeated no-shows for agreed swaps'},
            format='json'
        )

        self.assertTrue(BlacklistedToken.objects.filter(token__jti=refresh['jti']).exists())
        self.client.force_authenticate(user=None)
        response = self.client.post('/api/auth/token/refresh/', {'refresh': str(refresh)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_banned_user_is_refused_on_member_endpoints(self):
        services.ban_user(self.admin, self.alice.id, 'Repeated no-shows for agreed swaps')
        self.alice.refresh_from_db()
        self.client.force_authenticate(user=self.alice)

        self.assertEqual(self.client.get('/api/users/me/').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get('/api/swaps/').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get('/api/ratings/mine/').status_code, status.HTTP_403_FORBIDDEN)

    def test_banned_user_disappears_from_public_listing(self):
        services.ban_user(self.admin, self.alice.id, 'Repeated no-shows for agreed swaps')
        self.client.force_authenticate(user=None)

        response = self.client.get('/api/users/')

        ids = {item['id'] for item in response.data['results']}
        self.assertNotIn(self.alice.id, ids)

    def test_cannot_send_request_to_banned_user(self):
        offer(self.alice, 'Guitar')
        offer(self.bob, 'Painting')
        services.ban_user(self.admin, self.alice.id, 'Repeated no-shows for agreed swaps')
        self.client.force_authenticate(user=self.bob)

        response = self.client.post(
            '/api/swaps/',
            {
                'recipient_id': self.alice.id,
                'requested_skill': {'name': 'Guitar'},
                'offered_skill': {'name': 'Painting'},
            },
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'validation')


class UnbanUserTests(AdminTestCase):

    def test_unban_user(self):
        services.ban_user(self.admin, self.alice.id, 'Repeated no-shows for agreed swaps')

        response = self.client.post(f'/api/admin/users/{self.alice.id}/unban/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.alice.refresh_from_db()
        self.assertFalse(self.alice.is_banned)
        self.assertEqual(self.alice.ban_reason, '')
        self.assertTrue(ActivityLog.objects.filter(action='user_unbanned', target_user=self.alice).exists())

    def test_unbanned_user_regains_access(self):
        services.ban_user(self.admin, self.alice.id, 'Repeated no-shows for agreed swaps')
        services.unban_user(self.admin, self.alice.id)
        self.alice.refresh_from_db()
        self.client.force_authenticate(user=self.alice)

        response = self.client.get('/api/users/me/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)


class AdminSwapListTests(AdminTestCase):

    def setUp(self):
        super().setUp()
        self.carol = make_user('carol')
        offer(self.alice, 'Guitar')
        offer(self.bob, 'Painting')
        offer(self.carol, 'Cooking')
        self.pending = services.create_swap_request(self.alice, self.bob.id, 'Painting', 'Guitar')
        rejected = services.create_swap_request(self.carol, self.alice.id, 'Guitar', 'Cooking')
        services.reject_swap_request(rejected.id, self.alice)

    def test_lists_every_swap(self):
        response = self.client.get('/api/admin/swaps/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

    def test_filter_by_status(self):
        response = self.client.get('/api/admin/swaps/', {'status': 'pending'})

        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], self.pending.id)

    def test_invalid_status(self):
        response = self.client.get('/api/admin/swaps/', {'status': 'archived'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ActivityLogTests(AdminTestCase):

    def setUp(self):
        super().setUp()
        offer(self.alice, 'Guitar')
        offer(self.bob, 'Painting')
        swap = services.create_swap_request(self.alice, self.bob.id, 'Painting', 'Guitar')
        services.accept_swap_request(swap.id, self.bob)

    def test_lists_entries_newest_first(self):
        response = self.client.get('/api/admin/activity-logs/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        actions = [item['action'] for item in response.data['results']]
        self.assertEqual(actions, ['swap_request_accepted', 'swap_request_created'])

    def test_filter_by_action(self):
        response = self.client.get('/api/admin/activity-logs/', {'action': 'swap_request_created'})

        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['user']['id'], self.alice.id)

    def test_filter_by_user(self):
        response = self.client.get('/api/admin/activity-logs/', {'user_id': self.bob.id})

        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'swap_request_accepted')

    def test_filter_by_date_range(self):
        today = timezone.localdate()
        tomorrow = today + timedelta(days=1)

        response = self.client.get(
            '/api/admin/activity-logs/',
            {'start_date': today.isoformat(), 'end_date': today.isoformat()}
        )
        self.assertEqual(response.data['count'], 2)

        response = self.client.get('/api/admin/activity-logs/', {'start_date': tomorrow.isoformat()})
        self.assertEqual(response.data['count'], 0)

    def test_filter_by_naive_datetime_bound(self):
        hour_ago = (timezone.now() - timedelta(hours=1)).strftime('%Y-%m-%dT%H:%M:%S')
        hour_ahead = (timezone.now() + timedelta(hours=1)).strftime('%Y-%m-%dT%H:%M:%S')

        response = self.client.get(
            '/api/admin/activity-logs/',
            {'start_date': hour_ago, 'end_date': hour_ahead}
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        response = self.client.get('/api/admin/activity-logs/', {'end_date': hour_ago})
        self.assertEqual(response.data['count'], 0)

    def test_invalid_user_id(self):
        response = self.client.get('/api/admin/activity-logs/', {'user_id': 'abc'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'validation')

    def test_invalid_action(self):
        response = self.client.get('/api/admin/activity-logs/', {'action': 'teleport'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_date(self):
        response = self.client.get('/api/admin/activity-logs/', {'start_date': 'yesterday'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ModerateSkillTests(AdminTestCase):

    def setUp(self):
        super().setUp()
        self.skill = offer(self.alice, 'Guitar')

    def test_remove_skill(self):
        response = self.client.post(
            '/api/admin/moderate-skill/',
            {'user_id': self.alice.id, 'side': 'offered', 'skill_id': self.skill.id, 'action': 'remove'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Skill.objects.filter(pk=self.skill.pk).exists())

        log = ActivityLog.objects.get(action='admin_action')
        self.assertEqual(log.user, self.admin)
        self.assertEqual(log.target_user, self.alice)
        self.assertEqual(log.details['moderation'], 'remove')
        self.assertEqual(log.details['skill_name'], 'Guitar')

    def test_update_skill(self):
        response = self.client.post(
            '/api/admin/moderate-skill/',
            {
                'user_id': self.alice.id,
                'side': 'offered',
                'skill_id': self.skill.id,
                'action': 'update',
                'description': 'Beginner-friendly acoustic guitar lessons',
            },
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['description'], 'Beginner-friendly acoustic guitar lessons')
        self.skill.refresh_from_db()
        self.assertEqual(self.skill.name, 'Guitar')

        log = ActivityLog.objects.get(action='admin_action')
        self.assertEqual(
            log.details['changes'],
            {'description': 'Beginner-friendly acoustic guitar lessons'}
        )

    def test_rename_to_case_variant_of_existing_skill(self):
        offer(self.alice, 'Painting')

        with patch.object(Skill, 'full_clean'):
            response = self.client.post(
                '/api/admin/moderate-skill/',
                {
                    'user_id': self.alice.id,
                    'side': 'offered',
                    'skill_id': self.skill.id,
                    'action': 'update',
                    'name': 'PAINTING',
                },
                format='json'
            )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'validation')
        self.skill.refresh_from_db()
        self.assertEqual(self.skill.name, 'Guitar')
        self.assertFalse(ActivityLog.objects.filter(action='admin_action').exists())

    def test_update_without_changes(self):
        response = self.client.post(
            '/api/admin/moderate-skill/',
            {'user_id': self.alice.id, 'side': 'offered', 'skill_id': self.skill.id, 'action': 'update'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_skill_on_wrong_side(self):
        response = self.client.post(
            '/api/admin/moderate-skill/',
            {'user_id': self.alice.id, 'side': 'wanted', 'skill_id': self.skill.id, 'action': 'remove'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(Skill.objects.filter(pk=self.skill.pk).exists())
        self.assertFalse(ActivityLog.objects.filter(action='admin_action').exists())

    def test_skill_of_another_user(self):
        response = self.client.post(
            '/api/admin/moderate-skill/',
            {'user_id': self.bob.id, 'side': 'offered', 'skill_id': self.skill.id, 'action': 'remove'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
