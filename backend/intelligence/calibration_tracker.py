"""
CalibrationTracker: compares prior intelligence predictions with what
check-ins actually report, and accumulates the prediction error.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from checkins.models import CheckinRecord, METRIC_FIELDS
from checkins.normalization import outlet_score
from intelligence.models import (
    BucketDimension,
    CalibrationBucket,
    CalibrationMetrics,
    IntelligenceOutcome,
    IntelligencePrediction,
    OutcomeQuality,
    confidence_bucket,
)
from locations.conf import engine_setting

logger = logging.getLogger(__name__)


WORK_SCORE_WEIGHTS = {
    'wifi_speed': 0.35,
    'noise_level': 0.25,
    'busyness': 0.20,
    'laptop_friendly': 0.12,
    'outlet_availability': 0.08,
}

# Negative phrases are matched (and removed) before positive ones,
# so "no outlets" never counts as "outlets".
NEGATIVE_TAG_KEYWORDS = (
    'slow wifi', 'no wifi', 'no outlets', 'loud', 'noisy', 'crowded', 'packed', 'cramped', 'uncomfortable',
)
POSITIVE_TAG_KEYWORDS = (
    'fast wifi', 'outlets', 'quiet', 'spacious', 'cozy', 'focus', 'productive', 'comfortable', 'study',
)
NEGATIVE_CAPTION_KEYWORDS = (
    'slow wifi', 'no wifi', 'no outlets', 'no seats', 'loud', 'noisy', 'crowded', 'packed', 'distracting',
    'terrible', 'awful',
)
POSITIVE_CAPTION_KEYWORDS = (
    'fast wifi', 'quiet', 'productive', 'focused', 'perfect', 'great', 'love', 'comfortable', 'cozy',
)


class CalibrationStatus:
    LINKED = 'linked'
    DUPLICATE = 'duplicate'
    SKIPPED_INSUFFICIENT_SIGNAL = 'skipped_insufficient_signal'
    SKIPPED_NO_MATCH = 'skipped_no_match'
    SKIPPED_IRRELEVANT = 'skipped_irrelevant'
    FAILED = 'failed'


@dataclass
class CalibrationResult:
    """Soft status of one calibration attempt; never raised, only reported."""
    status: str
    checkin_id: Optional[str] = None
    outcome_id: Optional[str] = None
    prediction_id: Optional[str] = None
    observed_work_score: Optional[float] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != CalibrationStatus.FAILED


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def metric_scores(checkin: CheckinRecord) -> Dict[str, float]:
    """Each present metric mapped to 0-100, higher meaning better for working."""
    scores = {}
    if checkin.wifi_speed is not None:
        scores['wifi_speed'] = (_clamp(checkin.wifi_speed, 1, 5) - 1) / 4 * 100
    if checkin.noise_level is not None:
        scores['noise_level'] = (5 - _clamp(checkin.noise_level, 1, 5)) / 4 * 100
    if checkin.busyness is not None:
        scores['busyness'] = (5 - _clamp(checkin.busyness, 1, 5)) / 4 * 100
    if checkin.laptop_friendly is not None:
        scores['laptop_friendly'] = 100.0 if checkin.laptop_friendly else 0.0
    outlets = outlet_score(checkin.outlet_availability)
    if outlets is not None:
        scores['outlet_availability'] = (outlets - 1) / 3 * 100
    return scores


def keyword_delta(texts: Iterable[str], negative: Tuple[str, ...], positive: Tuple[str, ...],
                  plus: float, minus: float, limit: float) -> float:
    """Sums keyword hits over texts, clamped to +/- limit."""
    delta = 0.0
    for text in texts:
        remaining = (text or '').lower()
        for keyword in negative:
            if keyword in remaining:
                delta -= minus
                remaining = remaining.replace(keyword, ' ')
        for keyword in positive:
            if keyword in remaining:
                delta += plus
    return _clamp(delta, -limit, limit)


def quality_label(score: float) -> str:
    if score >= 80:
        return OutcomeQuality.EXCELLENT
    if score >= 65:
        return OutcomeQuality.GOOD
    if score < 45:
        return OutcomeQuality.POOR
    return OutcomeQuality.MIXED


class CalibrationTracker:
    """
    Matches a check-in to the best prior prediction for the same spot and
    records one IntelligenceOutcome per (check-in, prediction) pair.

    The aggregate rows are changed only with F() increments inside the same
    transaction as the outcome insert, so concurrent check-ins resolving to
    the same buckets never lose updates. Every failure is converted into a
    CalibrationResult; nothing propagates to the check-in write path.
    """

    MIN_SIGNALS = 2
    LOOKBACK_HOURS = 6
    LOOKAHEAD_MINUTES = 20
    RECENCY_HOURS = 5
    CANDIDATE_LIMIT = 50

    PLACE_MATCH = 5.0
    NAME_MATCH = 4.0
    SAME_USER = 2.0
    RECENCY_MAX = 2.0

    TAG_HIT_BONUS, TAG_HIT_PENALTY, TAG_LIMIT = 4.0, 5.0, 14.0
    CAPTION_HIT_BONUS, CAPTION_HIT_PENALTY, CAPTION_LIMIT = 5.0, 6.0, 18.0

    def __init__(self, lookback_hours: Optional[float] = None, lookahead_minutes: Optional[float] = None):
        self.LOOKBACK_HOURS = lookback_hours or engine_setting('CALIBRATION_LOOKBACK_HOURS')
        self.LOOKAHEAD_MINUTES = lookahead_minutes or engine_setting('CALIBRATION_LOOKAHEAD_MINUTES')
        self.RECENCY_HOURS = engine_setting('CALIBRATION_RECENCY_HOURS')
        self.CANDIDATE_LIMIT = engine_setting('CALIBRATION_CANDIDATE_LIMIT')

    def handle_event(self, checkin: CheckinRecord, created: bool,
                     changed_fields: Optional[List[str]] = None) -> CalibrationResult:
        """Entry point for checkin_recorded: updates only count when a metric changed."""
        if not created and not set(changed_fields or ()) & set(METRIC_FIELDS):
            return CalibrationResult(status=CalibrationStatus.SKIPPED_IRRELEVANT, checkin_id=str(checkin.id))
        return self.process_checkin(checkin)

    def process_checkin(self, checkin: CheckinRecord) -> CalibrationResult:
        try:
            result = self._process(checkin)
        except Exception as e:
            logger.exception(f"Calibration failed for check-in {checkin.id}")
            return CalibrationResult(status=CalibrationStatus.FAILED, checkin_id=str(checkin.id), error=str(e))

        logger.info(f"Calibration {result.status} for check-in {checkin.id}")
        return result

    def observed_work_score(self, checkin: CheckinRecord) -> Tuple[Optional[float], int]:
        """
        Weighted 0-100 work score over the metrics present, re-weighted so
        missing metrics do not count as zero.

        Returns:
            (score or None when fewer than MIN_SIGNALS metrics, signal count)
        """
        scores = metric_scores(checkin)
        if len(scores) < self.MIN_SIGNALS:
            return None, len(scores)

        total_weight = sum(WORK_SCORE_WEIGHTS[name] for name in scores)
        score = sum(WORK_SCORE_WEIGHTS[name] * value for name, value in scores.items()) / total_weight
        return round(score, 2), len(scores)

    def match_score(self, prediction: IntelligencePrediction, checkin: CheckinRecord) -> float:
        """
        +5 same place id, otherwise +4 same name; +2 same user; up to +2 for
        recency, halved for predictions made after the check-in.
        No venue match scores 0.
        """
        if prediction.place_id and prediction.place_id == checkin.place_id:
            score = self.PLACE_MATCH
        elif prediction.place_name and prediction.place_name.strip().lower() == (checkin.spot_name or '').strip().lower():
            score = self.NAME_MATCH
        else:
            return 0.0

        if prediction.user_id and prediction.user_id == checkin.user_id:
            score += self.SAME_USER

        delta_hours = abs((checkin.created_at - prediction.created_at).total_seconds()) / 3600
        recency = self.RECENCY_MAX * max(0.0, 1 - delta_hours / self.RECENCY_HOURS)
        if prediction.created_at > checkin.created_at:
            recency /= 2
        return score + recency

    def find_best_prediction(self, checkin: CheckinRecord) -> Tuple[Optional[IntelligencePrediction], float]:
        start = checkin.created_at - timedelta(hours=self.LOOKBACK_HOURS)
        end = checkin.created_at + timedelta(minutes=self.LOOKAHEAD_MINUTES)

        venue = Q(place_id=checkin.place_id)
        if checkin.spot_name:
            venue |= Q(place_name__iexact=checkin.spot_name)

        candidates = (
            IntelligencePrediction.objects.filter(venue, created_at__gte=start, created_at__lte=end)
            .order_by('-created_at')[:self.CANDIDATE_LIMIT]
        )

        best, best_score = None, 0.0
        for prediction in candidates:
            score = self.match_score(prediction, checkin)
            # candidates arrive newest first, so ties keep the most recent
            if score > best_score:
                best, best_score = prediction, score
        return best, best_score

    def outcome_quality(self, observed: float, checkin: CheckinRecord, signal_count: int) -> Tuple[str, float, float]:
        """
        Adjusts the observed score with tag and caption sentiment.

        Returns:
            (label, score, confidence)
        """
        tags = [tag for tag in (checkin.tags or []) if isinstance(tag, str)]
        caption = checkin.caption or ''

        score = observed
        score += keyword_delta(tags, NEGATIVE_TAG_KEYWORDS, POSITIVE_TAG_KEYWORDS,
                               self.TAG_HIT_BONUS, self.TAG_HIT_PENALTY, self.TAG_LIMIT)
        score += keyword_delta([caption], NEGATIVE_CAPTION_KEYWORDS, POSITIVE_CAPTION_KEYWORDS,
                               self.CAPTION_HIT_BONUS, self.CAPTION_HIT_PENALTY, self.CAPTION_LIMIT)
        score = _clamp(score, 0, 100)

        confidence = 0.2 + 0.12 * signal_count + 0.03 * min(len(tags), 3)
        if caption.strip():
            confidence += 0.06
        return quality_label(score), score, _clamp(confidence, 0.2, 0.95)

    def _process(self, checkin: CheckinRecord) -> CalibrationResult:
        checkin_id = str(checkin.id)
        observed, signal_count = self.observed_work_score(checkin)
        if observed is None:
            return CalibrationResult(status=CalibrationStatus.SKIPPED_INSUFFICIENT_SIGNAL, checkin_id=checkin_id)

        prediction, match = self.find_best_prediction(checkin)
        if prediction is None:
            return CalibrationResult(
                status=CalibrationStatus.SKIPPED_NO_MATCH, checkin_id=checkin_id, observed_work_score=observed
            )

        outcome_id = IntelligenceOutcome.build_key(checkin.id, prediction.id)
        label, quality_score, quality_confidence = self.outcome_quality(observed, checkin, signal_count)
        signed_error = prediction.work_score - observed
        result = CalibrationResult(
            status=CalibrationStatus.LINKED,
            checkin_id=checkin_id,
            outcome_id=outcome_id,
            prediction_id=str(prediction.id),
            observed_work_score=observed,
        )

        with transaction.atomic():
            if IntelligenceOutcome.objects.filter(pk=outcome_id).exists():
                result.status = CalibrationStatus.DUPLICATE
                return result
            try:
                with transaction.atomic():
                    outcome = IntelligenceOutcome.objects.create(
                        id=outcome_id,
                        checkin=checkin,
                        prediction=prediction,
                        place_id=checkin.place_id,
                        predicted_work_score=prediction.work_score,
                        observed_work_score=observed,
                        signed_error=signed_error,
                        abs_error=abs(signed_error),
                        squared_error=signed_error ** 2,
                        confidence_bucket=confidence_bucket(prediction.confidence),
                        model_version=prediction.model_version,
                        match_score=match,
                        signal_count=signal_count,
                        outcome_quality_label=label,
                        outcome_quality_score=quality_score,
                        outcome_quality_confidence=quality_confidence,
                    )
            except IntegrityError:
                result.status = CalibrationStatus.DUPLICATE
                return result

            self._increment(outcome)

        return result

    def _increment(self, outcome: IntelligenceOutcome) -> None:
        CalibrationMetrics.objects.get_or_create(id=CalibrationMetrics.CURRENT)
        CalibrationMetrics.objects.filter(id=CalibrationMetrics.CURRENT).update(**self._error_deltas(outcome))

        segments = (
            (BucketDimension.CONFIDENCE, outcome.confidence_bucket),
            (BucketDimension.QUALITY, outcome.outcome_quality_label),
            (BucketDimension.MODEL_VERSION, outcome.model_version),
        )
        for dimension, bucket in segments:
            CalibrationBucket.objects.get_or_create(dimension=dimension, bucket=bucket)
            CalibrationBucket.objects.filter(dimension=dimension, bucket=bucket).update(**self._error_deltas(outcome))

    @staticmethod
    def _error_deltas(outcome: IntelligenceOutcome):
        return {
            'sample_count': F('sample_count') + 1,
            'abs_error_sum': F('abs_error_sum') + outcome.abs_error,
            'squared_error_sum': F('squared_error_sum') + outcome.squared_error,
            'signed_error_sum': F('signed_error_sum') + outcome.signed_error,
            'updated_at': timezone.now(),
        }
