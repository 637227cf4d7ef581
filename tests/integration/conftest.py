from __future__ import annotations

import os

import pytest


@pytest.fixture(scope="session")
def require_sirene_token() -> str:
    """Token for the live INSEE Sirene API, or skip."""

    token = (os.getenv("SIRENE_API_TOKEN") or "").strip()
    if not token:
        msg = "SIRENE_API_TOKEN not set"

        # In CI the token is expected to be provided as a secret.
        if os.getenv("REQUIRE_SIRENE"):
            pytest.fail(msg, pytrace=False)

        pytest.skip(f"{msg}; skipping integration tests")
    return token
