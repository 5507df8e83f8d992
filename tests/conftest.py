"""Shared fixtures for the Folio test suite."""

from typing import List, Optional

import pytest

from folio.core.fallback import MemoryContentStore
from folio.core.router import Router
from folio.utils.logger import LogHandler, Logger, LogLevel, LogRecord


class MemoryHandler(LogHandler):
    """Collects log records for assertions."""

    def __init__(self) -> None:
        super().__init__(level=LogLevel.DEBUG)
        self.records: List[LogRecord] = []

    def emit(self, record: LogRecord) -> None:
        self.records.append(record)

    def messages(self, level: Optional[LogLevel] = None) -> List[str]:
        return [r.message for r in self.records if level is None or r.level == level]

    def find(self, message: str) -> List[LogRecord]:
        return [r for r in self.records if r.message == message]


@pytest.fixture
def log_handler() -> MemoryHandler:
    return MemoryHandler()


@pytest.fixture
def memory_logger(log_handler: MemoryHandler) -> Logger:
    return Logger("folio.test", level=LogLevel.DEBUG, handlers=[log_handler])


@pytest.fixture
def content_store() -> MemoryContentStore:
    return MemoryContentStore({"home", "about", "blog/hello"})


@pytest.fixture
def router(memory_logger: Logger, content_store: MemoryContentStore) -> Router:
    return Router(content_store=content_store, logger=memory_logger)


@pytest.fixture
def content_dir(tmp_path):
    """A content root holding pages/home.md, pages/about.md and pages/blog/hello.md."""
    pages = tmp_path / "content" / "pages"
    (pages / "blog").mkdir(parents=True)
    (pages / "home.md").write_text("# Home\n", encoding="utf-8")
    (pages / "about.md").write_text("# About\n", encoding="utf-8")
    (pages / "blog" / "hello.md").write_text("# Hello\n", encoding="utf-8")
    (tmp_path / "secret.md").write_text("secret\n", encoding="utf-8")
    return tmp_path / "content"
