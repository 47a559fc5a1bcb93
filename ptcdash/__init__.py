"""Core (UI-agnostic) PTC dashboard logic.

This package contains:
- the record engine (aggregator rankings/distributions, record browser)
- column descriptors and the per-dataset registry
- sample fleet data generation and filter normalization
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict) and CSV export
"""
