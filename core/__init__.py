"""Core (UI-agnostic) dashboard logic.

This package contains:
- data loading (CSV -> pandas) and field-level normalization
- entity name keys, de-duplication and aggregation
- ballot-return statistics and cross-election alignment
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
