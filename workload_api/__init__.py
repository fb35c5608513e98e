"""HTTP surface (FastAPI) over the workload engine."""
