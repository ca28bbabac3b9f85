# Generated manually for the wallet app

import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='PassRegistration',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('device_library_identifier', models.CharField(max_length=255)),
                ('pass_type_identifier', models.CharField(max_length=255)),
                ('serial_number', models.CharField(db_index=True, max_length=255)),
                ('push_token', models.CharField(blank=True, max_length=255, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'pass_registrations',
                'ordering': ['-updated_at'],
            },
        ),
        migrations.AddIndex(
            model_name='passregistration',
            index=models.Index(fields=['pass_type_identifier', 'serial_number'], name='pass_regist_pass_ty_9beb81_idx'),
        ),
        migrations.AddIndex(
            model_name='passregistration',
            index=models.Index(fields=['device_library_identifier', 'pass_type_identifier'], name='pass_regist_device__753bfa_idx'),
        ),
        migrations.AddConstraint(
            model_name='passregistration',
            constraint=models.UniqueConstraint(fields=('device_library_identifier', 'pass_type_identifier', 'serial_number'), name='unique_pass_registration'),
        ),
    ]
