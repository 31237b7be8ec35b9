"""HTTP API layer (FastAPI).

This module exposes the small `/api` surface the browser UI uses to:
- list and search the actor catalog
- start a run and poll its status
- preview the dataset of a finished run

The API is intentionally thin: remote calls live in `apify_tester.clients` and the
run state machine in `apify_tester.runtime`.
"""
