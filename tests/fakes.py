"""
In-memory stand-in for the subset of the supabase-py query builder the
repositories use.

Supported: table().select(cols, count=)/insert()/update()/delete() followed by
eq, ilike, in_, gte, order, limit and execute(). Filters may address JSON columns with
PostgREST arrow paths (`application_data->arf_submission->>arf_reference_number`).
insert/update/delete return the affected rows, like PostgREST's
`return=representation`.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from postgrest.exceptions import APIError

_PATH_SPLIT = re.compile(r"->>?")


@dataclass
class FakeResponse:
    data: List[Dict[str, Any]]
    count: Optional[int] = None


def _resolve(row: Dict[str, Any], column: str) -> Any:
    value: Any = row
    for part in _PATH_SPLIT.split(column):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _like_regex(pattern: str) -> "re.Pattern[str]":
    # % and _ are wildcards unless escaped with a backslash.
    parts: List[str] = []
    chars = iter(pattern)
    for char in chars:
        if char == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def _sortable(value: Any) -> Tuple[int, Any]:
    # None sorts first; ISO timestamps compare as datetimes.
    if value is None:
        return (0, 0)
    if isinstance(value, str):
        try:
            return (1, datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return (2, value)
    return (1, value)


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._count: Optional[str] = None
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._order: List[Tuple[str, bool]] = []
        self._limit: Optional[int] = None

    # operations

    def select(self, columns: str = "*", count: Optional[str] = None) -> "FakeQuery":
        self._op = "select"
        self._count = count
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = payload
        return self

    def delete(self) -> "FakeQuery":
        self._op = "delete"
        return self

    # filters and modifiers

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: _resolve(row, column) == value)
        return self

    def ilike(self, column: str, pattern: str) -> "FakeQuery":
        matcher = _like_regex(pattern)
        self._filters.append(
            lambda row: isinstance(_resolve(row, column), str) and matcher.fullmatch(_resolve(row, column)) is not None
        )
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        wanted = list(values)
        self._filters.append(lambda row: _resolve(row, column) in wanted)
        return self

    def gte(self, column: str, value: Any) -> "FakeQuery":
        bound = _sortable(value)
        self._filters.append(
            lambda row: _resolve(row, column) is not None and _sortable(_resolve(row, column)) >= bound
        )
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order.append((column, desc))
        return self

    def limit(self, size: int) -> "FakeQuery":
        self._limit = size
        return self

    # execution

    def _matching(self) -> List[Dict[str, Any]]:
        return [row for row in self._db.rows(self._table) if all(f(row) for f in self._filters)]

    def execute(self) -> FakeResponse:
        self._db.calls.append((self._table, self._op))
        failure = self._db.failures.get((self._table, self._op))
        if failure is not None:
            failure["remaining"] -= 1
            if failure["remaining"] <= 0:
                self._db.failures.pop((self._table, self._op))
            raise APIError({"message": failure["message"], "code": "XX000"})

        if self._op == "insert":
            payloads = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = [self._db.add(self._table, p) for p in payloads]
            return FakeResponse(data=copy.deepcopy(inserted))

        rows = self._matching()

        if self._op == "update":
            for row in rows:
                row.update(copy.deepcopy(self._payload))
            return FakeResponse(data=copy.deepcopy(rows))

        if self._op == "delete":
            self._db.remove(self._table, rows)
            return FakeResponse(data=copy.deepcopy(rows))

        for column, desc in reversed(self._order):
            rows = sorted(rows, key=lambda r: _sortable(_resolve(r, column)), reverse=desc)
        total = len(rows)
        if self._limit is not None:
            rows = rows[: self._limit]
        return FakeResponse(data=copy.deepcopy(rows), count=total if self._count else None)


class FakeSupabase:
    """Tables are lists of dict rows keyed by table name."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.failures: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def add(self, table: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        row = copy.deepcopy(payload)
        if not row.get("id"):
            row["id"] = str(uuid4())
        if not row.get("created_at"):
            row["created_at"] = datetime.now(timezone.utc).isoformat()
        self.rows(table).append(row)
        return row

    def remove(self, table: str, rows: List[Dict[str, Any]]) -> None:
        ids = {id(r) for r in rows}
        self.tables[table] = [r for r in self.rows(table) if id(r) not in ids]

    def seed(self, table: str, *rows: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [self.add(table, row) for row in rows]

    def fail(self, table: str, op: str, times: int = 1, message: str = "simulated failure") -> None:
        """Make the next `times` executions of `op` on `table` raise APIError."""
        self.failures[(table, op)] = {"remaining": times, "message": message}

    def find(self, table: str, **criteria: Any) -> List[Dict[str, Any]]:
        return [r for r in self.rows(table) if all(r.get(k) == v for k, v in criteria.items())]


def prospect_row(business_name: str = "Acme Bakery", status: str = "new", **extra: Any) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "id": str(uuid4()),
        "business_name": business_name,
        "industry": "Restaurants",
        "contact_name": None,
        "email": None,
        "phone": None,
        "estimated_revenue": None,
        "status": status,
    }
    row.update(extra)
    return row


def conversation_row(prospect_id: str, **extra: Any) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "id": str(uuid4()),
        "prospect_id": prospect_id,
        "channel": "email",
        "messages": [],
        "qualification_score": None,
        "qualified": False,
        "last_contact": datetime.now(timezone.utc).isoformat(),
    }
    row.update(extra)
    return row


def application_row(prospect_id: str, **extra: Any) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "id": str(uuid4()),
        "prospect_id": prospect_id,
        "application_data": {},
        "documents_uploaded": False,
        "submitted_to_arf": False,
        "loan_amount": None,
        "commission_rate": "0.02",
        "commission_amount": None,
        "arf_submission_date": None,
        "funding_date": None,
        "status": "draft",
    }
    row.update(extra)
    return row
