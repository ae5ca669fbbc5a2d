#!/usr/bin/env python3
"""
Analysis of scan history: regression classification and trend forecasting.
"""

from .regression import RegressionClassifier
from .trends import TrendAnalyzer, TrendReport, Forecast, since_for_range

__all__ = [
    'RegressionClassifier',
    'TrendAnalyzer', 'TrendReport', 'Forecast', 'since_for_range'
]
