"""Analysis helpers.

Thin wrappers around statsmodels, scikit-learn and scipy:
- Stationarity testing (ADF) and differencing order search
- Seasonal decomposition (STL, classical) and seasonal tables
- Autocorrelation, normality and Box-Cox diagnostics
"""
