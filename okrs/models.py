import uuid

from django.conf import settings
from django.db import models


QUARTER_CHOICES = [
    ('Q1', 'Q1'),
    ('Q2', 'Q2'),
    ('Q3', 'Q3'),
    ('Q4', 'Q4'),
]

MIN_YEAR = 2020
MAX_YEAR = 2030


class OKRStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    COMPLETED = 'completed', 'Completed'
    ARCHIVED = 'archived', 'Archived'


class OKRQuerySet(models.QuerySet):
    def owned_by(self, user_id):
        """Restrict to rows owned by ``user_id``. Every controller query starts here."""
        return self.filter(owner_id=user_id)


class OKR(models.Model):
    """
    An objective with its ordered list of key results.

    Key results are stored as a JSON list of
    ``{"description": ..., "target": ..., "current": ...}`` objects.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='okrs',
        help_text="User who created this OKR; the only one allowed to see or change it"
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    objective = models.TextField()
    quarter = models.CharField(max_length=2, choices=QUARTER_CHOICES)
    year = models.IntegerField(help_text=f"Between {MIN_YEAR} and {MAX_YEAR}")
    status = models.CharField(
        max_length=20,
        choices=OKRStatus.choices,
        default=OKRStatus.ACTIVE,
    )
    progress = models.IntegerField(default=0, help_text="Percent complete, 0-100")
    key_results = models.JSONField(default=list)

    # Audit fields
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OKRQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'OKR'
        verbose_name_plural = 'OKRs'
        constraints = [
            models.CheckConstraint(
                condition=models.Q(progress__gte=0) & models.Q(progress__lte=100),
                name='okr_progress_range',
            ),
            models.CheckConstraint(
                condition=models.Q(year__gte=MIN_YEAR) & models.Q(year__lte=MAX_YEAR),
                name='okr_year_range',
            ),
            models.CheckConstraint(
                condition=models.Q(status__in=OKRStatus.values),
                name='okr_status_valid',
            ),
            models.CheckConstraint(
                condition=models.Q(quarter__in=[q for q, _ in QUARTER_CHOICES]),
                name='okr_quarter_valid',
            ),
        ]

    def __str__(self):
        return f"{self.title} ({self.quarter} {self.year})"

    @property
    def key_result_count(self):
        return len(self.key_results) if isinstance(self.key_results, list) else 0
