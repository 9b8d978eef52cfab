from __future__ import annotations

import os
import random
import tempfile
from pathlib import Path

import pytest

from scenecraft._config import default_settings
from scenecraft.scene.editor import Editor

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def pytest_configure():
    os.environ.setdefault("PYVISTA_OFF_SCREEN", "true")
    # keep the user's real ~/.scenecraft out of test runs
    os.environ["SCENECRAFT_HOME"] = tempfile.mkdtemp(prefix="scenecraft-home-")


@pytest.fixture
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def settings():
    return default_settings()


@pytest.fixture
def editor(settings) -> Editor:
    return Editor(settings=settings, rng=random.Random(1234))
