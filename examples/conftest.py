"""Fixtures for the runnable examples.

Each example directory holds an ``app.py`` that builds a module-level
``app``. Tests get a freshly executed copy so no state leaks between them.
"""

import runpy
from pathlib import Path

import pytest


@pytest.fixture
def example_app(request: pytest.FixtureRequest):
    """The ``app`` defined by the ``app.py`` beside the requesting test."""
    app_file = Path(request.path).with_name("app.py")
    namespace = runpy.run_path(str(app_file), run_name=f"example_{app_file.parent.name}")
    return namespace["app"]
