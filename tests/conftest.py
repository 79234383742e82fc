import os
import sys

import pytest

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

import gl_project_viewer as glv  # noqa: E402
from helpers import FakeSession  # noqa: E402


@pytest.fixture
def fake_session(monkeypatch):
    """Install a FakeSession built from `replies` in place of glv._session."""

    def install(replies):
        session = FakeSession(replies)

        def _factory(token):
            session.token = token
            return session

        monkeypatch.setattr(glv, '_session', _factory)
        return session

    return install


@pytest.fixture
def make_projects():
    def _make(count: int):
        return tuple(
            glv.Project(name=f'project-{i}', description=f'desc {i}', web_url=f'https://gitlab.example.com/p/{i}')
            for i in range(count)
        )
    return _make


@pytest.fixture(autouse=True)
def quiet_logger():
    glv.setup_logging('ERROR')
    yield
