import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='OKR',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('objective', models.TextField()),
                ('quarter', models.CharField(choices=[('Q1', 'Q1'), ('Q2', 'Q2'), ('Q3', 'Q3'), ('Q4', 'Q4')], max_length=2)),
                ('year', models.IntegerField(help_text='Between 2020 and 2030')),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed'), ('archived', 'Archived')], default='active', max_length=20)),
                ('progress', models.IntegerField(default=0, help_text='Percent complete, 0-100')),
                ('key_results', models.JSONField(default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(help_text='User who created this OKR; the only one allowed to see or change it', on_delete=django.db.models.deletion.CASCADE, related_name='okrs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'OKR',
                'verbose_name_plural': 'OKRs',
                'ordering': ['-created_at'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('progress__gte', 0), ('progress__lte', 100)), name='okr_progress_range'),
                    models.CheckConstraint(condition=models.Q(('year__gte', 2020), ('year__lte', 2030)), name='okr_year_range'),
                    models.CheckConstraint(condition=models.Q(('status__in', ['active', 'completed', 'archived'])), name='okr_status_valid'),
                    models.CheckConstraint(condition=models.Q(('quarter__in', ['Q1', 'Q2', 'Q3', 'Q4'])), name='okr_quarter_valid'),
                ],
            },
        ),
    ]
