"""Profitability and WIP aggregation service."""
