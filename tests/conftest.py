from __future__ import annotations

import os

import pytest


@pytest.fixture(autouse=True)
def _clear_inventory_env(monkeypatch) -> None:
    for name in list(os.environ):
        if name.startswith("AWS_INV_"):
            monkeypatch.delenv(name, raising=False)
