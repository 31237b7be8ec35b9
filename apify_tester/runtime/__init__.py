"""Run lifecycle (start, poll, terminal status, dataset preview).

This layer owns the polling state machine for a remote run. It only talks to the
remote API through `apify_tester.clients`, so both the HTTP layer
(`apify_tester.api`) and the CLI reuse the same logic.
"""
