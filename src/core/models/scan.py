#!/usr/bin/env python3
"""
Scan data models.

EngineScan is what the external scan engine returns; ScanResult is the
immutable, persisted outcome of one executed run.
"""

from datetime import datetime
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field

IMPACT_LEVELS = ('critical', 'serious', 'moderate', 'minor')


@dataclass
class Violation:
    """A single accessibility issue reported by the scan engine."""
    impact: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    rule_id: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.impact, str):
            self.impact = self.impact.strip().lower() or None
        self.tags = [str(tag).lower() for tag in (self.tags or [])]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Violation':
        return cls(
            impact=data.get('impact'),
            tags=list(data.get('tags') or []),
            rule_id=data.get('id') or data.get('rule_id'),
        )


@dataclass
class EngineScan:
    """Raw scan engine response."""
    score: float
    violations: List[Violation] = field(default_factory=list)
    performance_score: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineScan':
        if data.get('score') is None:
            raise ValueError('engine response has no score')
        score = float(data['score'])
        if not 0 <= score <= 100:
            raise ValueError(f'engine score {score:g} is outside 0-100')

        performance = data.get('performance_score', data.get('performanceScore'))
        return cls(
            score=score,
            violations=[Violation.from_dict(v) for v in data.get('violations') or []],
            performance_score=float(performance) if performance is not None else None,
        )


@dataclass
class ScanResult:
    """Persisted compliance metrics of one executed scan."""
    schedule_id: str
    target_url: str
    score: int
    issues_count: int
    impact_critical: int = 0
    impact_serious: int = 0
    impact_moderate: int = 0
    impact_minor: int = 0
    wcag_aa_compliance: Optional[int] = None
    wcag_aaa_compliance: Optional[int] = None
    performance_score: Optional[int] = None
    previous_result_id: Optional[str] = None
    score_change: int = 0
    below_threshold: bool = False
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    def __post_init__(self):
        self.score = max(0, min(100, int(self.score)))

    @property
    def impact_breakdown(self) -> Dict[str, int]:
        return {
            'critical': self.impact_critical,
            'serious': self.impact_serious,
            'moderate': self.impact_moderate,
            'minor': self.impact_minor,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'schedule_id': self.schedule_id,
            'target_url': self.target_url,
            'score': self.score,
            'issues_count': self.issues_count,
            'impact': self.impact_breakdown,
            'wcag_aa_compliance': self.wcag_aa_compliance,
            'wcag_aaa_compliance': self.wcag_aaa_compliance,
            'performance_score': self.performance_score,
            'previous_result_id': self.previous_result_id,
            'score_change': self.score_change,
            'below_threshold': self.below_threshold,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'ScanResult':
        return cls(
            id=str(row['id']),
            schedule_id=str(row['schedule_id']),
            target_url=row.get('target_url') or '',
            score=row['score'],
            issues_count=row.get('issues_count') or 0,
            impact_critical=row.get('impact_critical') or 0,
            impact_serious=row.get('impact_serious') or 0,
            impact_moderate=row.get('impact_moderate') or 0,
            impact_minor=row.get('impact_minor') or 0,
            wcag_aa_compliance=row.get('wcag_aa_compliance'),
            wcag_aaa_compliance=row.get('wcag_aaa_compliance'),
            performance_score=row.get('performance_score'),
            previous_result_id=str(row['previous_result_id']) if row.get('previous_result_id') else None,
            score_change=row.get('score_change') or 0,
            below_threshold=bool(row.get('below_threshold')),
            created_at=row.get('created_at'),
        )
