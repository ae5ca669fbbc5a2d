#!/usr/bin/env python3
"""
Trend Analyzer & Forecaster

Read-only analysis over a chronological series of scan results: overall
direction, per-step change, best/worst targets, change patterns and a
least-squares short-horizon forecast.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List, Optional

from ..exceptions import ValidationError
from ..models.scan import ScanResult

logger = logging.getLogger(__name__)

TREND_THRESHOLD_PCT = 5.0
GRADUAL_THRESHOLD_PCT = 10.0
SUDDEN_CHANGE_FACTOR = 2.0
WEEKLY_PATTERN_MIN_POINTS = 14
FORECAST_MIN_POINTS = 5
FORECAST_HORIZON = 7
CONFIDENCE_MIN = 30
CONFIDENCE_MAX = 95
DEFAULT_CONFIDENCE = 50
COMPLIANCE_RISK_LEVEL = 70

STATISTICS_WINDOW = 30
DIRECTION_SAMPLE = 5
DIRECTION_MARGIN = 2

TIME_RANGES = {'7d': 7, '30d': 30, '90d': 90}

BASE_FORECAST_FACTORS = [
    'Historical trend analysis',
    'Seasonal accessibility patterns',
    'Site update frequency correlation',
]


def _round1(value: float) -> float:
    return round(value * 10) / 10


def since_for_range(time_range: str, now: Optional[datetime] = None) -> datetime:
    """Start instant of a named time range ("7d", "30d", "90d")."""
    if time_range not in TIME_RANGES:
        raise ValidationError('time_range', time_range, f"one of {', '.join(TIME_RANGES)}")
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=TIME_RANGES[time_range])


@dataclass
class TrendPattern:
    type: str
    description: str
    impact: str

    def to_dict(self) -> Dict[str, str]:
        return {'type': self.type, 'description': self.description, 'impact': self.impact}


@dataclass
class Forecast:
    next_week_score: float = 0.0
    confidence: int = 0
    factors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'next_week_score': self.next_week_score,
            'confidence': self.confidence,
            'factors': list(self.factors),
        }


@dataclass
class TrendReport:
    """Insights and forecast for a series of scan results."""
    points: List[Dict[str, Any]] = field(default_factory=list)
    overall_trend: str = 'stable'
    trend_percentage: float = 0.0
    avg_score_change: float = 0.0
    best_performer: Optional[str] = None
    worst_performer: Optional[str] = None
    patterns: List[TrendPattern] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    forecast: Forecast = field(default_factory=Forecast)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trends': list(self.points),
            'insights': {
                'overall_trend': self.overall_trend,
                'trend_percentage': self.trend_percentage,
                'best_performer': self.best_performer,
                'worst_performer': self.worst_performer,
                'avg_score_change': self.avg_score_change,
                'patterns': [pattern.to_dict() for pattern in self.patterns],
                'recommendations': list(self.recommendations),
            },
            'predictions': self.forecast.to_dict(),
        }


class TrendAnalyzer:
    """Computes trend insights from stored scan results."""

    def analyze(self, results: List[ScanResult]) -> TrendReport:
        """
        Analyze a series of results.

        Args:
            results: Scan results for one schedule or several, in
                chronological order

        Returns:
            TrendReport; series shorter than two points yield an empty report
        """
        if len(results) < 2:
            return TrendReport(
                points=[self._point(result) for result in results],
                recommendations=['Run more scans to generate meaningful trend analysis'],
            )

        scores = [result.score for result in results]
        first, last = scores[0], scores[-1]

        trend_pct = (last - first) / first * 100 if first > 0 else 0.0
        if trend_pct > TREND_THRESHOLD_PCT:
            overall = 'improving'
        elif trend_pct < -TREND_THRESHOLD_PCT:
            overall = 'declining'
        else:
            overall = 'stable'

        deltas = [scores[i] - scores[i - 1] for i in range(1, len(scores))]
        avg_change = sum(deltas) / len(deltas)

        best, worst = self._best_and_worst(results)
        patterns = self._patterns(trend_pct, deltas, len(results))
        recommendations = self._recommendations(overall, results)
        forecast = self.forecast(scores)
        if avg_change > 0:
            forecast.factors.append('Positive improvement momentum')

        logger.debug(f"Trend over {len(results)} results: {overall} ({trend_pct:.1f}%)")

        return TrendReport(
            points=[self._point(result) for result in results],
            overall_trend=overall,
            trend_percentage=_round1(trend_pct),
            avg_score_change=_round1(avg_change),
            best_performer=best,
            worst_performer=worst,
            patterns=patterns,
            recommendations=recommendations,
            forecast=forecast,
        )

    def forecast(self, scores: List[float]) -> Forecast:
        """
        Project the score FORECAST_HORIZON steps past the last point.

        Uses an ordinary least-squares fit of score against sequence index.
        Confidence is 100 - 2 * (mean squared residual), clamped to
        [CONFIDENCE_MIN, CONFIDENCE_MAX]. With fewer than FORECAST_MIN_POINTS
        points the last score is returned at default confidence.
        """
        factors = list(BASE_FORECAST_FACTORS)
        if not scores:
            return Forecast(factors=factors)

        last = scores[-1]
        n = len(scores)
        if n < FORECAST_MIN_POINTS:
            return Forecast(next_week_score=_round1(last), confidence=DEFAULT_CONFIDENCE, factors=factors)

        xs = range(n)
        sum_x = sum(xs)
        sum_y = sum(scores)
        sum_xy = sum(x * y for x, y in zip(xs, scores))
        sum_xx = sum(x * x for x in xs)
        slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)

        mean_x = sum_x / n
        mean_y = sum_y / n
        mse = sum((y - (mean_y + slope * (x - mean_x))) ** 2 for x, y in zip(xs, scores)) / n
        confidence = max(CONFIDENCE_MIN, min(CONFIDENCE_MAX, 100 - mse * 2))

        return Forecast(
            next_week_score=_round1(last + slope * FORECAST_HORIZON),
            confidence=int(round(confidence)),
            factors=factors,
        )

    def schedule_statistics(self, results: List[ScanResult]) -> Optional[Dict[str, Any]]:
        """
        Summary statistics over the most recent results of one schedule.

        Direction compares the mean of the newest five scores with the mean
        of the five before them, with a two-point margin.
        """
        if not results:
            return None

        recent_first = list(reversed(results))[:STATISTICS_WINDOW]
        scores = [result.score for result in recent_first]
        latest = recent_first[0]

        direction = 'stable'
        newer = scores[:DIRECTION_SAMPLE]
        older = scores[DIRECTION_SAMPLE:DIRECTION_SAMPLE * 2]
        if older:
            newer_avg = sum(newer) / len(newer)
            older_avg = sum(older) / len(older)
            if newer_avg > older_avg + DIRECTION_MARGIN:
                direction = 'improving'
            elif newer_avg < older_avg - DIRECTION_MARGIN:
                direction = 'declining'

        return {
            'latest_score': latest.score,
            'avg_score': int(round(sum(scores) / len(scores))),
            'min_score': min(scores),
            'max_score': max(scores),
            'trend_direction': direction,
            'total_scans': len(recent_first),
            'regression_count': sum(1 for result in recent_first if result.below_threshold),
            'latest_scan_date': latest.created_at.isoformat() if latest.created_at else None,
        }

    def compare_with_history(self, results: List[ScanResult], score: int) -> Dict[str, Any]:
        """Place a score relative to the schedule's historical average."""
        stats = self.schedule_statistics(results)
        if stats is None:
            return {'is_good': True, 'message': 'First scan - establishing baseline', 'comparison': 'baseline'}

        avg = stats['avg_score']
        if score >= avg + 5:
            return {
                'is_good': True,
                'message': f"Excellent! Score is {score - avg} points above average",
                'comparison': 'above_average',
            }
        if score >= avg - 5:
            return {'is_good': True, 'message': 'Score is within normal range', 'comparison': 'average'}
        if score < avg - 10:
            return {
                'is_good': False,
                'message': f"Warning: Score is {avg - score} points below average",
                'comparison': 'below_average',
            }
        return {
            'is_good': score >= avg,
            'message': 'Score is slightly below average',
            'comparison': 'slightly_below',
        }

    @staticmethod
    def _point(result: ScanResult) -> Dict[str, Any]:
        return {
            'date': result.created_at.date().isoformat() if result.created_at else None,
            'score': result.score,
            'issues': result.issues_count,
            'wcag_aa_compliance': result.wcag_aa_compliance,
            'performance_score': result.performance_score,
            'target_url': result.target_url,
            'schedule_id': result.schedule_id,
        }

    @staticmethod
    def _best_and_worst(results: List[ScanResult]):
        """Targets with the highest and lowest mean score; a score of 0 counts."""
        by_target: Dict[str, List[int]] = {}
        for result in results:
            by_target.setdefault(result.target_url, []).append(result.score)

        averages = {target: sum(scores) / len(scores) for target, scores in by_target.items()}
        best = max(averages, key=averages.get)
        worst = min(averages, key=averages.get)
        return best, worst

    @staticmethod
    def _patterns(trend_pct: float, deltas: List[int], count: int) -> List[TrendPattern]:
        patterns = []

        if trend_pct > GRADUAL_THRESHOLD_PCT:
            patterns.append(TrendPattern(
                'gradual',
                'Consistent improvement over time indicates effective remediation efforts',
                'positive'
            ))
        elif trend_pct < -GRADUAL_THRESHOLD_PCT:
            patterns.append(TrendPattern(
                'gradual',
                'Consistent decline over time points to accumulating accessibility regressions',
                'negative'
            ))

        changes = [abs(delta) for delta in deltas]
        avg_abs_change = sum(changes) / len(changes)
        sudden = [change for change in changes if change > avg_abs_change * SUDDEN_CHANGE_FACTOR]
        if sudden:
            patterns.append(TrendPattern(
                'sudden',
                f"Detected {len(sudden)} sudden score changes, indicating major site updates",
                'neutral'
            ))

        if count >= WEEKLY_PATTERN_MIN_POINTS:
            patterns.append(TrendPattern(
                'weekly',
                'Analyzing weekly patterns in accessibility scores',
                'neutral'
            ))

        return patterns

    @staticmethod
    def _recommendations(overall: str, results: List[ScanResult]) -> List[str]:
        if overall == 'declining':
            recommendations = [
                'Schedule regular accessibility audits to prevent further regression',
                'Implement automated testing in your CI/CD pipeline',
            ]
        elif overall == 'improving':
            recommendations = [
                'Continue current remediation efforts - they are working well',
                'Consider sharing best practices across all sites',
            ]
        else:
            recommendations = [
                'Establish consistent accessibility monitoring schedule',
                'Focus on proactive improvements rather than reactive fixes',
            ]

        if any(r.wcag_aa_compliance is not None and r.wcag_aa_compliance < COMPLIANCE_RISK_LEVEL
               for r in results):
            recommendations.append('Prioritize WCAG AA compliance issues for legal risk mitigation')

        return recommendations
