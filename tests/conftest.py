import re
import threading
from typing import Callable, List, Optional, Tuple

import pytest

from content_platform.config import ContentConfig, DatabaseConfig
from content_platform.db.engine import configure_database, get_engine, reset_engine
from content_platform.db.schema import create_schema


@pytest.fixture
def sqlite_db(tmp_path):
    """Fresh SQLite file database with the full schema."""
    configure_database(DatabaseConfig(url=f"sqlite:///{tmp_path / 'content_platform_test.db'}"))
    create_schema(get_engine())
    yield get_engine()
    reset_engine()


@pytest.fixture
def content_config(tmp_path) -> ContentConfig:
    upload_dir = tmp_path / "content"
    upload_dir.mkdir()
    return ContentConfig(upload_dir=str(upload_dir))


def html_from_prompt(prompt: str) -> str:
    """The user prompt is an instruction line, a blank line, then the markup."""
    return prompt.split("\n\n", 1)[1]


def add_marker(html: str, element: str, attribute: str, value: str) -> str:
    """Add attribute="value" to the first <element ...> opening tag."""
    return re.sub(rf"<{element}\b", f'<{element} {attribute}="{value}"', html, count=1)


class FakeGateway:
    """Stands in for AnnotationGateway; responder gets (html, prompt, system_prompt)."""

    def __init__(self, responder: Optional[Callable[[str, str, Optional[str]], str]] = None):
        self.responder = responder or (lambda html, prompt, system_prompt: html)
        self.calls: List[Tuple[str, Optional[str]]] = []
        self._lock = threading.Lock()

    def invoke(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        with self._lock:
            self.calls.append((prompt, system_prompt))
        return self.responder(html_from_prompt(prompt), prompt, system_prompt)


@pytest.fixture
def echo_gateway() -> FakeGateway:
    return FakeGateway()
