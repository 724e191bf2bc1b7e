import math
import re
import uuid
from django.db import models
from django.utils import timezone

from checkins.models import CheckinRecord


class ConfidenceBucket(models.TextChoices):
    HIGH = 'high', 'High'
    MEDIUM = 'medium', 'Medium'
    LOW = 'low', 'Low'


class OutcomeQuality(models.TextChoices):
    EXCELLENT = 'excellent', 'Excellent'
    GOOD = 'good', 'Good'
    MIXED = 'mixed', 'Mixed'
    POOR = 'poor', 'Poor'


class BucketDimension(models.TextChoices):
    CONFIDENCE = 'confidence', 'Confidence'
    QUALITY = 'quality', 'Outcome quality'
    MODEL_VERSION = 'model_version', 'Model version'


def confidence_bucket(confidence: float) -> str:
    if confidence >= 0.75:
        return ConfidenceBucket.HIGH
    if confidence >= 0.5:
        return ConfidenceBucket.MEDIUM
    return ConfidenceBucket.LOW


class IntelligencePrediction(models.Model):
    """
    A work-suitability estimate for a spot, produced upstream and kept
    so it can later be compared with what check-ins actually report.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    place_id = models.CharField(max_length=255, blank=True, default="", db_index=True)
    place_name = models.CharField(max_length=255, blank=True, default="")
    user_id = models.CharField(max_length=128, blank=True, default="")
    work_score = models.FloatField(help_text="Predicted work score, 0 to 100")
    confidence = models.FloatField(help_text="Producer confidence, 0 to 1")
    model_version = models.CharField(max_length=64, default='unknown')
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = 'intelligence_predictions'
        indexes = [
            models.Index(fields=['place_id', 'created_at'], name='intel_pred_place_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.place_name or self.place_id}: {self.work_score} ({self.model_version})"


class IntelligenceOutcome(models.Model):
    """
    Links one check-in to the prediction it was matched with, and stores
    the observed score and error of that prediction.
    """
    id = models.CharField(primary_key=True, max_length=255, help_text="Sanitized '<checkin>_<prediction>' key")
    checkin = models.ForeignKey(CheckinRecord, on_delete=models.CASCADE, related_name='intelligence_outcomes')
    prediction = models.ForeignKey(IntelligencePrediction, on_delete=models.CASCADE, related_name='outcomes')
    place_id = models.CharField(max_length=255, db_index=True)

    predicted_work_score = models.FloatField()
    observed_work_score = models.FloatField()
    signed_error = models.FloatField(help_text="predicted - observed")
    abs_error = models.FloatField()
    squared_error = models.FloatField()

    confidence_bucket = models.CharField(max_length=10, choices=ConfidenceBucket.choices)
    model_version = models.CharField(max_length=64)
    match_score = models.FloatField()
    signal_count = models.PositiveSmallIntegerField()

    outcome_quality_label = models.CharField(max_length=10, choices=OutcomeQuality.choices)
    outcome_quality_score = models.FloatField()
    outcome_quality_confidence = models.FloatField()

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'intelligence_outcomes'
        constraints = [
            models.UniqueConstraint(fields=['checkin', 'prediction'], name='unique_checkin_prediction_outcome'),
        ]

    def __str__(self):
        return f"{self.id} ({self.signed_error:+.1f})"

    @staticmethod
    def build_key(checkin_id, prediction_id) -> str:
        return re.sub(r'[^A-Za-z0-9_-]', '_', f"{checkin_id}_{prediction_id}")[:255]


class ErrorSums(models.Model):
    """Append-only error sums. Rows are only ever changed with F() increments."""
    sample_count = models.PositiveIntegerField(default=0)
    abs_error_sum = models.FloatField(default=0.0)
    squared_error_sum = models.FloatField(default=0.0)
    signed_error_sum = models.FloatField(default=0.0)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        abstract = True

    @property
    def mean_abs_error(self):
        return self.abs_error_sum / self.sample_count if self.sample_count else None

    @property
    def mean_signed_error(self):
        return self.signed_error_sum / self.sample_count if self.sample_count else None

    @property
    def rmse(self):
        return math.sqrt(self.squared_error_sum / self.sample_count) if self.sample_count else None


class CalibrationMetrics(ErrorSums):
    """Rolling calibration aggregate, a single row keyed 'current'."""
    CURRENT = 'current'

    id = models.CharField(primary_key=True, max_length=32, default=CURRENT)

    class Meta:
        db_table = 'intelligence_calibration_metrics'
        verbose_name_plural = 'calibration metrics'

    def __str__(self):
        return f"{self.id}: {self.sample_count} samples"

    @classmethod
    def current(cls):
        metrics, _ = cls.objects.get_or_create(id=cls.CURRENT)
        return metrics


class CalibrationBucket(ErrorSums):
    """Error sums for one segment: a confidence bucket, quality label or model version."""
    dimension = models.CharField(max_length=20, choices=BucketDimension.choices)
    bucket = models.CharField(max_length=64)

    class Meta:
        db_table = 'intelligence_calibration_buckets'
        constraints = [
            models.UniqueConstraint(fields=['dimension', 'bucket'], name='unique_calibration_bucket'),
        ]
        ordering = ['dimension', 'bucket']

    def __str__(self):
        return f"{self.dimension}={self.bucket}: {self.sample_count} samples"
