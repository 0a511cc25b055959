import sys
from pathlib import Path

import pytest

# Ensure project root is on path for imports when running pytest from repo root
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nl2cypher.pipeline.samples import sample_schema  # noqa: E402


@pytest.fixture
def movies_schema():
    return sample_schema("movies")


class FakeGenerator:
    """Stands in for ``generate_text``: returns canned text or raises a canned error."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def __call__(self, backend, system_prompt, user_prompt, **kwargs):
        self.calls.append({"backend": backend, "system": system_prompt, "user": user_prompt, **kwargs})
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def fake_generator():
    return FakeGenerator
