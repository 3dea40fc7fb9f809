from __future__ import annotations

import pytest

from storyarc.modules.sessions.service import reset_arc_sessions


@pytest.fixture(autouse=True)
def _reset_arc_sessions() -> None:
    reset_arc_sessions()
    yield
    reset_arc_sessions()
