"""Shared state passed to every command handler."""

from __future__ import annotations

import argparse
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from browser_tools.browser.session import SessionContext
from browser_tools.browser.session_store import SessionStore
from browser_tools.scraping.selectors import SelectorConfig, load_selector_config
from browser_tools.utils.config import Settings, get_selectors_file
from browser_tools.utils.retry import RetryPolicy


@dataclass
class CommandContext:
    """Everything a handler needs besides its own arguments.

    Attributes:
        settings: Loaded settings
        store: Persistent session record store
        session: Session supplied by an enclosing ``run``; handlers borrow
            it and never release it
        selectors_path: Selector configuration override from the CLI
    """

    settings: Settings
    store: SessionStore = field(default_factory=SessionStore)
    session: SessionContext | None = None
    selectors_path: Path | None = None

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy.from_settings(self.settings)

    def selector_config(self) -> SelectorConfig:
        return load_selector_config(self.selectors_file())

    def selectors_file(self) -> Path:
        return self.selectors_path or get_selectors_file(self.settings)


CommandHandler = Callable[[argparse.Namespace, CommandContext], Awaitable[Any]]
