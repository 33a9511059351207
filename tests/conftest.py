"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient

from app.main import create_app


@pytest.fixture
def client_for():
    """Build a TestClient whose dependencies return the given objects.

    The lifespan is not entered, so no database connection is attempted.
    """
    app = create_app()

    def provide(value):
        # A closure, not a defaulted parameter: FastAPI would treat the
        # parameter as a query field and hand back a copy of the default.
        return lambda: value

    def build(overrides: dict) -> TestClient:
        for dependency, value in overrides.items():
            app.dependency_overrides[dependency] = provide(value)
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()
