"""
Tests for the payments app.

This package contains test modules for:
- test_models.py: Transaction, gateway settings, subscription and audit models
- test_signals.py: Order completion receiver
- test_views.py: Admin API endpoints
- test_tasks.py: Replay task
- test_integration.py: Full notification journeys

Adapter, service and webhook view tests live beside their packages.

Usage:
    pytest payments/
    pytest -m e2e
"""
