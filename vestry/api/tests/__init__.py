"""
VESTRY API Test Suite

Service and HTTP tests against an in-memory SQLite database.

Test Files:
- conftest.py: Shared fixtures (database, recorder, accounts, tokens)
- test_audit_recorder.py: Recording, defaults, redaction and failure handling
- test_audit_queries.py: Listing, statistics, export and retention
- test_account_service.py: Account operations and their tier rules
- test_api_routes.py: Guarded endpoints over HTTP

Run Commands:
    pytest vestry/api/tests -v
"""
