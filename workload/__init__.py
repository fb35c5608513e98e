"""Workload dashboard engine (UI-agnostic).

This package contains:
- settings and the declared column tables
- spreadsheet loading and record normalization (rows -> frozen records)
- employee / task / requirement folds (pandas groupbys)
- team filtering, search and sorting
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
