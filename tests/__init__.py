"""
Test suite for schema-sync.

Unit tests cover the schema model, planner, verifier, reconciliation facade,
Parse Server client and command executor, configuration and the CLI. The
Parse Server is always mocked.
"""
