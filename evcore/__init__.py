"""Core (UI-agnostic) EV registration dashboard logic.

This package contains:
- data loading (CSV text -> typed records -> pandas frame)
- the ingestion state machine
- generic aggregation primitives and the nine view configurations
- insight text and chart helpers (Altair -> Vega-Lite spec dict)
"""
