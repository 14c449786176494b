"""Integration tests for the wiki store.

These tests run the components against real bare git repositories created
under pytest's tmp_path. They bridge the gap between isolated unit tests
with mocked subprocess calls and full CLI journeys.

Test Coverage:
- Backing store: commits, reads, history, tree listings, ref races
- Page store: cultures, history, snapshots at a revision, listings
- Media promotion: page and media files landing in one commit
- Concurrent edits: stale writes detected through content hashes
- Access rules: rule file commits and cache invalidation

Requirements:
- A ``git`` executable on PATH (tests are skipped otherwise)

Run only these tests with:
    pytest -m integration
"""
