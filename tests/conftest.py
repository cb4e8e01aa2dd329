"""Pytest fixtures for Chatalog tests."""

import pytest

from chatalog.config import ChatalogConfig
from chatalog.paths import StorePaths
from chatalog.store import Store


THREE_TURN_EXPORT = """---
noteId: note-123
chatId: chat-abc
title: Weeknight Pasta
chatTitle: Pasta Ideas
subject: Cooking
topic: Pasta
tags: [dinner, quick, dinner]
summary: Ideas for fast pasta dinners
pageUrl: https://chat.example.com/c/chat-abc
---
<!-- chatalog-meta {"noteId":"note-123"} -->

# Cooking - Pasta

Source: https://chat.example.com/c/chat-abc
Exported: 2025-11-02T10:00:00Z

## Table of Contents

1. [How long to boil?](#p-1)
2. [Best sauce?](#p-2)
3. [Leftovers?](#p-3)

<a id="p-1"></a>
**Prompt**

> How long should I boil spaghetti?

**Response**

### Boiling spaghetti

About 9 minutes in salted water.

<a id="p-2"></a>
**Prompt**

> What is the best quick sauce?

**Response**

Garlic, olive oil and chili.

<a id="p-3"></a>
**Prompt**

> How do I store leftovers?

**Response**

Refrigerate within two hours.
"""


@pytest.fixture
def temp_home(tmp_path):
    """Create a temporary store root.

    Args:
        tmp_path: pytest's built-in temporary directory fixture

    Returns:
        Path to temporary store root
    """
    home = tmp_path / "chatalog_home"
    home.mkdir()
    return home


@pytest.fixture
def chatalog_config(temp_home):
    return ChatalogConfig.for_home(temp_home)


@pytest.fixture
def store_paths(chatalog_config):
    """StorePaths with all directories and an empty ledger created."""
    paths = StorePaths.from_config(chatalog_config)
    for directory in paths.get_all_directories():
        directory.mkdir(parents=True, exist_ok=True)
    paths.ledger_file.touch()
    return paths


@pytest.fixture
def store(store_paths):
    """SQLite store on a temporary file."""
    s = Store.open(store_paths.db_file)
    yield s
    s.close()


@pytest.fixture
def three_turn_export():
    return THREE_TURN_EXPORT.encode("utf-8")
