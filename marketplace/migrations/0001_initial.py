import decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import marketplace.models
import marketplace.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('name', models.CharField(blank=True, default='', help_text='Display name shown to other users.', max_length=50, verbose_name='name')),
                ('location', models.CharField(blank=True, default='', help_text='City or region where the user is based.', max_length=100, verbose_name='location')),
                ('availability', models.CharField(choices=[('weekdays', 'Weekdays'), ('weekends', 'Weekends'), ('evenings', 'Evenings'), ('flexible', 'Flexible'), ('not-available', 'Not Available')], default='flexible', help_text='When the user is available for skill swaps.', max_length=20, verbose_name='availability')),
                ('profile_image', models.ImageField(blank=True, help_text='Optional. Upload a profile picture (max 5MB, formats: jpg, png, gif).', null=True, upload_to=marketplace.models.user_profile_image_upload_path, validators=[marketplace.validators.validate_profile_image], verbose_name='profile image')),
                ('is_profile_public', models.BooleanField(default=True, help_text='Whether the profile appears in public listings.', verbose_name='public profile')),
                ('is_banned', models.BooleanField(default=False, help_text='Banned users cannot use the API or receive swap requests.', verbose_name='banned')),
                ('ban_reason', models.CharField(blank=True, default='', max_length=500, verbose_name='ban reason')),
                ('average_rating', models.DecimalField(decimal_places=1, default=decimal.Decimal('0.0'), help_text='Mean of all ratings received, rounded to one decimal.', max_digits=2, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0.0'), message='Rating cannot be negative.'), django.core.validators.MaxValueValidator(decimal.Decimal('5.0'), message='Rating cannot exceed 5.0.')], verbose_name='average rating')),
                ('total_ratings', models.PositiveIntegerField(default=0, help_text='Number of ratings received.', verbose_name='total ratings')),
                ('completed_swaps', models.PositiveIntegerField(default=0, help_text='Number of swaps completed.', verbose_name='completed swaps')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['email'], name='mkt_user_email_idx'),
                    models.Index(fields=['location'], name='mkt_user_location_idx'),
                    models.Index(fields=['is_banned'], name='mkt_user_banned_idx'),
                ],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Skill',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('side', models.CharField(choices=[('offered', 'Offered'), ('wanted', 'Wanted')], max_length=10, verbose_name='side')),
                ('name', models.CharField(max_length=50, validators=[django.core.validators.MinLengthValidator(2)], verbose_name='name')),
                ('description', models.TextField(validators=[django.core.validators.MinLengthValidator(10), django.core.validators.MaxLengthValidator(500)], verbose_name='description')),
                ('level', models.CharField(choices=[('beginner', 'Beginner'), ('intermediate', 'Intermediate'), ('advanced', 'Advanced'), ('expert', 'Expert')], default='intermediate', max_length=20, verbose_name='level')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='skills', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'skill',
                'verbose_name_plural': 'skills',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['user', 'side'], name='mkt_skill_user_side_idx'),
                    models.Index(fields=['name'], name='mkt_skill_name_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SwapRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('requested_skill', models.JSONField(help_text='Snapshot of the recipient skill being requested.', validators=[marketplace.validators.validate_skill_snapshot], verbose_name='requested skill')),
                ('offered_skill', models.JSONField(help_text='Snapshot of the requester skill offered in return.', validators=[marketplace.validators.validate_skill_snapshot], verbose_name='offered skill')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('rejected', 'Rejected'), ('cancelled', 'Cancelled'), ('completed', 'Completed')], default='pending', max_length=20, verbose_name='status')),
                ('message', models.TextField(blank=True, default='', validators=[django.core.validators.MaxLengthValidator(1000)], verbose_name='message')),
                ('scheduled_date', models.DateTimeField(blank=True, null=True, verbose_name='scheduled date')),
                ('completed_date', models.DateTimeField(blank=True, null=True, verbose_name='completed date')),
                ('is_rated', models.BooleanField(default=False, verbose_name='rated')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('recipient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='swaps_received', to=settings.AUTH_USER_MODEL)),
                ('requester', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='swaps_requested', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'swap request',
                'verbose_name_plural': 'swap requests',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['requester', 'status'], name='mkt_swap_requester_status_idx'),
                    models.Index(fields=['recipient', 'status'], name='mkt_swap_recipient_status_idx'),
                    models.Index(fields=['status'], name='mkt_swap_status_idx'),
                    models.Index(fields=['created_at'], name='mkt_swap_created_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('requester', models.F('recipient')), _negated=True), name='swap_requester_differs_from_recipient'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Rating',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rating', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1, message='Rating must be at least 1.'), django.core.validators.MaxValueValidator(5, message='Rating must be at most 5.')], verbose_name='rating')),
                ('comment', models.TextField(blank=True, default='', validators=[django.core.validators.MaxLengthValidator(500)], verbose_name='comment')),
                ('skill_rated', models.JSONField(help_text='Snapshot {name, level} of the skill being rated.', validators=[marketplace.validators.validate_rated_skill], verbose_name='skill rated')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('rated_user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ratings_received', to=settings.AUTH_USER_MODEL)),
                ('rater', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ratings_given', to=settings.AUTH_USER_MODEL)),
                ('swap_request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ratings', to='marketplace.swaprequest')),
            ],
            options={
                'verbose_name': 'rating',
                'verbose_name_plural': 'ratings',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['rater', 'rated_user'], name='mkt_rating_rater_rated_idx'),
                    models.Index(fields=['rated_user'], name='mkt_rating_rated_user_idx'),
                    models.Index(fields=['created_at'], name='mkt_rating_created_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('swap_request', 'rater'), name='unique_rating_per_swap_and_rater'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ActivityLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('register', 'Register'), ('profile_update', 'Profile Update'), ('swap_request_created', 'Swap Request Created'), ('swap_request_accepted', 'Swap Request Accepted'), ('swap_request_rejected', 'Swap Request Rejected'), ('swap_request_cancelled', 'Swap Request Cancelled'), ('swap_completed', 'Swap Completed'), ('rating_given', 'Rating Given'), ('rating_updated', 'Rating Updated'), ('rating_deleted', 'Rating Deleted'), ('user_banned', 'User Banned'), ('user_unbanned', 'User Unbanned'), ('admin_action', 'Admin Action')], max_length=40, verbose_name='action')),
                ('details', models.JSONField(blank=True, default=dict, verbose_name='details')),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True, verbose_name='IP address')),
                ('user_agent', models.CharField(blank=True, default='', max_length=255, verbose_name='user agent')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('target_swap', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='activity_logs', to='marketplace.swaprequest')),
                ('target_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='targeted_activity_logs', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='activity_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'activity log',
                'verbose_name_plural': 'activity logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'created_at'], name='mkt_log_user_created_idx'),
                    models.Index(fields=['action', 'created_at'], name='mkt_log_action_created_idx'),
                    models.Index(fields=['created_at'], name='mkt_log_created_idx'),
                ],
            },
        ),
    ]
