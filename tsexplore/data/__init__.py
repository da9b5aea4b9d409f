"""Dataset loading module.

This module handles:
- The bundled AirPassengers series
- EuStockMarkets download and caching via statsmodels' Rdatasets helper
"""
