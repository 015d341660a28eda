# Generated manually for the expenses app

import uuid
from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Expense',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('description', models.CharField(max_length=500)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[MinValueValidator(Decimal('0.01'))])),
                ('currency', models.CharField(default='USD', max_length=3)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('date', models.DateField(default=django.utils.timezone.localdate)),
                ('notes', models.TextField(blank=True)),
                ('expense_type', models.CharField(choices=[('shared', 'Shared'), ('personal', 'Personal')], default='shared', max_length=20)),
                ('is_shared_expense', models.BooleanField(default=False)),
                ('split_partner1_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('split_partner2_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('split_method', models.CharField(blank=True, choices=[('equal', 'Equal'), ('percentage', 'Percentage'), ('amount', 'Amount')], max_length=20)),
                ('split_partner1_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('split_partner2_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('is_gift', models.BooleanField(default=False)),
                ('reveal_date', models.DateTimeField(blank=True, null=True)),
                ('is_revealed', models.BooleanField(default=False)),
                ('revealed_at', models.DateTimeField(blank=True, null=True)),
                ('reveal_message', models.CharField(blank=True, max_length=500)),
                ('is_settled', models.BooleanField(default=False)),
                ('settled_at', models.DateTimeField(blank=True, null=True)),
                ('is_deleted', models.BooleanField(default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('account', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='expenses', to='accounts.account')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='expenses', to=settings.AUTH_USER_MODEL)),
                ('split_partner1_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('split_partner2_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('gift_for', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='received_gifts', to=settings.AUTH_USER_MODEL)),
                ('settled_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'expenses',
                'ordering': ['-date', '-created_at'],
                'indexes': [
                    models.Index(fields=['account', 'date'], name='expenses_account_date_idx'),
                    models.Index(fields=['account', 'expense_type', 'date'], name='expenses_type_date_idx'),
                    models.Index(fields=['is_gift', 'is_revealed', 'reveal_date'], name='expenses_gift_reveal_idx'),
                    models.Index(fields=['account', 'is_settled'], name='expenses_settled_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ExpenseComment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('text', models.TextField()),
                ('is_edited', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('expense', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='comments', to='expenses.expense')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='expense_comments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'expense_comments',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['expense', 'created_at'], name='exp_comments_expense_idx'),
                    models.Index(fields=['user', 'created_at'], name='exp_comments_user_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ExpenseReaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('type', models.CharField(choices=[('like', 'Like'), ('love', 'Love'), ('concern', 'Concern'), ('question', 'Question'), ('surprise', 'Surprise')], max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('expense', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reactions', to='expenses.expense')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='expense_reactions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'expense_reactions',
                'ordering': ['created_at'],
                'unique_together': {('expense', 'user')},
            },
        ),
    ]
