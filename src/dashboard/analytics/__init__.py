"""UI-agnostic analytics pipeline for the ads dashboard.

This package contains:
- spreadsheet decoding and export (parser)
- calculated columns from user formulas (formula)
- account / year / period filters (filters)
- period aggregation for charting (aggregator, charts)
- two-period comparison verdicts (comparison)
- option domains for filters and metrics (metadata)
- session state and the recompute pipeline (session)
"""
