"""Shared fixtures for SurveyFlow tests."""

import os
from typing import Any, Dict

import pytest

from builders import branch_design, linear_design
from surveyflow.config.settings import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Isolate tests from SURVEYFLOW_* variables in the developer's shell."""
    for key in list(os.environ):
        if key.startswith("SURVEYFLOW_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def linear() -> Dict[str, Any]:
    return linear_design()


@pytest.fixture
def branching() -> Dict[str, Any]:
    return branch_design()
