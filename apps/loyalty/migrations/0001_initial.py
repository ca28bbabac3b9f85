# Generated manually for the loyalty app

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import apps.loyalty.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('employees', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Profile',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('full_name', models.CharField(blank=True, max_length=150, null=True)),
                ('email', models.EmailField(blank=True, max_length=255, null=True)),
                ('phone', models.CharField(blank=True, max_length=32, null=True)),
                ('birthday', models.DateField(blank=True, null=True)),
                ('points_balance', models.PositiveIntegerField(default=0)),
                ('total_purchases', models.PositiveIntegerField(default=0)),
                ('redeemed_rewards', models.JSONField(blank=True, default=apps.loyalty.models.default_redeemed_rewards)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'profiles',
                'ordering': ['-updated_at'],
            },
        ),
        migrations.CreateModel(
            name='LoyaltyTransaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('type', models.CharField(choices=[('purchase', 'Purchase'), ('redemption_coffee', 'Coffee redemption'), ('redemption_meal', 'Meal redemption')], max_length=20)),
                ('points_change', models.IntegerField(default=0)),
                ('points_balance_after', models.PositiveIntegerField()),
                ('reward_points_threshold', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to='loyalty.profile')),
                ('employee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='loyalty_transactions', to='employees.employee')),
            ],
            options={
                'db_table': 'transactions',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='profile',
            index=models.Index(fields=['email'], name='profiles_email_2f292b_idx'),
        ),
        migrations.AddIndex(
            model_name='profile',
            index=models.Index(fields=['-updated_at'], name='profiles_updated_3ce15d_idx'),
        ),
        migrations.AddIndex(
            model_name='profile',
            index=models.Index(fields=['-points_balance'], name='profiles_points__a2d9a1_idx'),
        ),
        migrations.AddIndex(
            model_name='loyaltytransaction',
            index=models.Index(fields=['customer', 'created_at'], name='transaction_custome_fb8ec8_idx'),
        ),
        migrations.AddIndex(
            model_name='loyaltytransaction',
            index=models.Index(fields=['employee', 'created_at'], name='transaction_employe_697a74_idx'),
        ),
        migrations.AddIndex(
            model_name='loyaltytransaction',
            index=models.Index(fields=['type', 'created_at'], name='transaction_type_d65539_idx'),
        ),
    ]
