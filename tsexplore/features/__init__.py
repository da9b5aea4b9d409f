"""Feature engineering module.

This module provides:
- Immutable TimeSeries containers and window configuration
- Leak-free temporal transforms (difference, lag, rolling, EWMA, geometric mean)
- sklearn-compatible DataFrame transformers
- Lookahead validation for transform pipelines
"""
