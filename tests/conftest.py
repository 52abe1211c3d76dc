"""
Shared fixtures for the Tance test suite.
"""

from typing import Any, Callable, Dict

import pytest

from tance.schema.skeema import Skeema
from tance.store.memory import InMemorySetStore

EMPLOYEE_V1 = {
    "type": "object",
    "properties": {
        "firstname": {"type": "string"},
        "lastname": {"type": "string"},
    },
    "required": ["firstname", "lastname"],
}

EMPLOYEE_V2 = {
    "type": "object",
    "properties": {
        "firstname": {"type": "string"},
        "lastname": {"type": "string"},
        "salary": {"type": "integer"},
    },
    "required": ["firstname", "lastname"],
}

EMPLOYEE_V3 = {
    "type": "object",
    "properties": {
        "firstname": {"type": "string"},
        "lastname": {"type": "string"},
        "salary": {"type": "integer"},
        "fullname": {"type": "string"},
    },
    "required": ["firstname", "lastname", "fullname"],
}


def add_salary(v1_employee: Dict[str, Any]) -> Dict[str, Any]:
    v1_employee["salary"] = 30000
    return v1_employee


def add_fullname(v2_employee: Dict[str, Any]) -> Dict[str, Any]:
    v2_employee["fullname"] = f"{v2_employee['firstname']} {v2_employee['lastname']}"
    return v2_employee


class FakeClock:
    """Manually advanced time source for key expiry."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def employee_schema() -> Skeema:
    """Three-version employee schema."""
    schema = Skeema("employee")
    schema.add_version(EMPLOYEE_V1)
    schema.add_version(EMPLOYEE_V2, add_salary)
    schema.add_version(EMPLOYEE_V3, add_fullname)
    return schema


@pytest.fixture
def employee() -> Callable[..., Dict[str, Any]]:
    """Factory for employee documents valid at the latest version."""

    def make(firstname: str, lastname: str, **extra: Any) -> Dict[str, Any]:
        doc = {
            "firstname": firstname,
            "lastname": lastname,
            "fullname": f"{firstname} {lastname}",
        }
        doc.update(extra)
        return doc

    return make


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemorySetStore:
    """Fresh in-memory store on a fake clock."""
    return InMemorySetStore(clock=clock)
