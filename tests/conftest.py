from __future__ import annotations

from collections.abc import Callable, Iterator
from itertools import count

import pytest
import structlog

from crystaldb.core.schema import DataItem, DocumentationBlock, UnitType


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


@pytest.fixture
def task_type() -> UnitType:
    """Unit type exercising a spread of kinds; ``title`` is required."""
    return UnitType(
        id="task",
        documentation=DocumentationBlock(name={"en": "Task"}, description="A unit of work"),
        items=[
            DataItem(id="title", type="string", metadata={"required": True}),
            DataItem(id="progress", type="percentage"),
            DataItem(id="estimate", type="number"),
            DataItem(id="done", type="boolean"),
            DataItem(id="due", type="date"),
            DataItem(id="status", type="enum"),
        ],
    )


@pytest.fixture
def person_type() -> UnitType:
    return UnitType(
        id="person",
        items=[
            DataItem(id="name", type="string"),
            DataItem(id="age", type="number"),
        ],
    )


@pytest.fixture
def sequential_ids() -> Callable[[], str]:
    """Deterministic id factory: id-1, id-2, ..."""
    counter = count(1)
    return lambda: f"id-{next(counter)}"
