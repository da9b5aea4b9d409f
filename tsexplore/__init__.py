"""Exploratory time series toolkit.

Leak-free temporal transforms (differences, lags, rolling statistics, EWMA)
plus thin analysis and plotting helpers for the classic AirPassengers and
EuStockMarkets datasets.
"""
