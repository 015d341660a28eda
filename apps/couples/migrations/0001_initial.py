# Generated manually for the couples app

import uuid
from decimal import Decimal
import django.db.models.deletion
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import migrations, models

import apps.couples.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='CoupleSettings',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('financial_model', models.CharField(choices=[('fifty_fifty', '50/50 Automatic'), ('proportional_income', 'Proportional to Income'), ('everything_common', 'Everything in Common'), ('mixed', 'Mixed Model')], default='fifty_fifty', max_length=30)),
                ('default_expense_type', models.CharField(choices=[('shared', 'Shared'), ('personal', 'Personal')], default='shared', max_length=20)),
                ('partner1_contribution_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))])),
                ('partner2_contribution_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))])),
                ('partner1_monthly_income', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('partner2_monthly_income', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('auto_calculate_from_income', models.BooleanField(default=False)),
                ('contribution_updated_at', models.DateTimeField(blank=True, null=True)),
                ('premium_tier', models.CharField(choices=[('basic', 'Basic'), ('one_premium', 'One Partner Premium'), ('both_premium', 'Both Partners Premium')], default='basic', max_length=20)),
                ('has_shared_goals', models.BooleanField(default=False)),
                ('has_detailed_comparisons', models.BooleanField(default=False)),
                ('has_joint_evolution_panel', models.BooleanField(default=False)),
                ('has_downloadable_reports', models.BooleanField(default=False)),
                ('has_advanced_analytics', models.BooleanField(default=False)),
                ('has_unlimited_comments', models.BooleanField(default=False)),
                ('has_custom_categories', models.BooleanField(default=False)),
                ('premium_updated_at', models.DateTimeField(blank=True, null=True)),
                ('invitation_accepted_at', models.DateTimeField(blank=True, null=True)),
                ('both_partners_accepted', models.BooleanField(default=False)),
                ('allow_comments', models.BooleanField(default=True)),
                ('allow_reactions', models.BooleanField(default=True)),
                ('show_contribution_stats', models.BooleanField(default=True)),
                ('enable_cross_reminders', models.BooleanField(default=True)),
                ('gift_mode_enabled', models.BooleanField(default=True)),
                ('shared_goals_enabled', models.BooleanField(default=True)),
                ('notifications', models.JSONField(blank=True, default=apps.couples.models.default_notifications)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('account', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='couple_settings', to='accounts.account')),
                ('partner1_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('partner2_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('contribution_updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('invitation_accepted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'couple_settings',
                'verbose_name_plural': 'couple settings',
                'indexes': [
                    models.Index(fields=['premium_tier'], name='couple_settings_tier_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CoupleSettingsChange',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('setting', models.CharField(max_length=100)),
                ('old_value', models.JSONField(blank=True, null=True)),
                ('new_value', models.JSONField(blank=True, null=True)),
                ('changed_at', models.DateTimeField(auto_now_add=True)),
                ('reason', models.CharField(blank=True, max_length=255)),
                ('settings', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='history', to='couples.couplesettings')),
                ('changed_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'couple_settings_changes',
                'ordering': ['changed_at'],
                'indexes': [
                    models.Index(fields=['settings', 'changed_at'], name='couple_changes_settings_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='FeatureUsage',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('feature', models.CharField(max_length=50)),
                ('period', models.DateField()),
                ('count', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('account', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='feature_usage', to='accounts.account')),
            ],
            options={
                'db_table': 'couple_feature_usage',
                'unique_together': {('account', 'feature', 'period')},
            },
        ),
    ]
