import django.db.models.deletion
import django.utils.timezone
import uuid
from django.conf import settings
from django.db import migrations, models

STATUS_CHOICES = [('pending', 'Pending'), ('processing', 'Processing'), ('completed', 'Completed'), ('forwarded', 'Forwarded')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Report',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField()),
                ('issue_type', models.CharField(max_length=100)),
                ('department', models.CharField(choices=[('electricity', 'Electricity'), ('pwd', 'Public Works'), ('roads_transport', 'Roads & Transport'), ('garbage_sanitation', 'Garbage & Sanitation'), ('water_supply', 'Water Supply'), ('others', 'Others')], max_length=32)),
                ('status', models.CharField(choices=STATUS_CHOICES, db_index=True, default='pending', max_length=20)),
                ('location_address', models.CharField(blank=True, max_length=255, null=True)),
                ('location_lat', models.FloatField(blank=True, null=True)),
                ('location_lng', models.FloatField(blank=True, null=True)),
                ('media_urls', models.JSONField(blank=True, default=list)),
                ('voice_note_url', models.URLField(blank=True, max_length=500, null=True)),
                ('processing_notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, editable=False)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('assigned_admin', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_reports', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reports', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', '-created_at'], name='report_owner_recent_idx'),
                    models.Index(fields=['department', 'status'], name='report_dept_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReportHistory',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('old_status', models.CharField(blank=True, choices=STATUS_CHOICES, max_length=20, null=True)),
                ('new_status', models.CharField(choices=STATUS_CHOICES, max_length=20)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('changed_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='report_changes', to=settings.AUTH_USER_MODEL)),
                ('report', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='history', to='reports.report')),
            ],
            options={
                'verbose_name_plural': 'report history',
                'ordering': ['created_at'],
            },
        ),
    ]
