# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Fixtures shared by every test module."""

import logging

import pytest


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handlers and level changes made by setup_logging()."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
