"""
Pytest fixtures for the payments admin API tests.

Usage:
    def test_list_transactions(api_client, pending_transaction):
        response = api_client.get(reverse("payments:transaction-list"))
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from payments.tests.factories import UserFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def admin_user(db):
    """Staff operator allowed to use the admin API."""
    return UserFactory(is_staff=True)


@pytest.fixture
def regular_user(db):
    """Authenticated user without staff rights."""
    return UserFactory(is_staff=False)


# =============================================================================
# API Client Fixtures
# =============================================================================


def _client_for(user) -> APIClient:
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


@pytest.fixture
def api_client(admin_user):
    """APIClient authenticated as a staff operator via JWT."""
    return _client_for(admin_user)


@pytest.fixture
def user_client(regular_user):
    """APIClient authenticated as a non-staff user."""
    return _client_for(regular_user)


@pytest.fixture
def anonymous_client():
    return APIClient()
