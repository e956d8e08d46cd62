"""Complexity estimation and pricing quotes."""

from .estimator import (
    ComplexityEstimator,
    ComplexityFactors,
    PricingQuote,
    calculate_pricing,
    classify_technical_complexity,
    estimate,
)

__all__ = [
    'ComplexityEstimator',
    'ComplexityFactors',
    'PricingQuote',
    'calculate_pricing',
    'classify_technical_complexity',
    'estimate',
]
