"""In-memory category store with ltree-style paths and a closure table."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

ROOT_ID = 0
ROOT_PATH = "root"
ROOT_NAME = "Root"
MAX_LEVEL = 4
MAX_CLOSURE_DEPTH = 3


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _labels(path: str) -> tuple[str, ...]:
    return tuple(path.split("."))


def _is_descendant_path(path: str, ancestor: str) -> bool:
    """True when ``path`` equals ``ancestor`` or lies beneath it."""
    anc = _labels(ancestor)
    return _labels(path)[: len(anc)] == anc


class NoRowsError(LookupError):
    """Raised when a query that must return one row returns none."""

    def __init__(self, message: str = "no rows in result set") -> None:
        super().__init__(message)


class UniqueViolationError(Exception):
    """Raised when a write would break the unique (parent_id, name) constraint."""

    def __init__(self, parent_id: int, name: str) -> None:
        self.parent_id = parent_id
        self.name = name
        super().__init__(
            "duplicate key value violates unique constraint on (parent_id, name): "
            f"({parent_id}, {name})"
        )


@dataclass
class CategoryRow:
    """A row of the categories table."""

    id: int
    parent_id: int
    level: int
    path: str
    name: str
    sort_order: int
    is_leaf: bool
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


@dataclass
class ClosureRow:
    """An ancestor/descendant pair of the closure table."""

    ancestor: int
    descendant: int
    depth: int


@dataclass
class CreateCategoryParams:
    parent_id: int
    name: str
    sort_order: int = 0


@dataclass
class UpdateCategoryNameParams:
    name: str
    id: int


@dataclass
class UpdateClosureDepthParams:
    delta: int | None
    category_id: int | None


class Queries:
    """Category queries over an in-memory table pair.

    Each write sees the table as it was when the write began, so a root row
    created implicitly by ``create_category`` is not yet visible as a parent
    within that same call.
    """

    def __init__(self) -> None:
        self._categories: dict[int, CategoryRow] = {}
        self._closure: list[ClosureRow] = []
        self._next_id = 1

    def _check_unique(self, parent_id: int, name: str, exclude: int | None = None) -> None:
        for row in self._categories.values():
            if row.id != exclude and row.parent_id == parent_id and row.name == name:
                raise UniqueViolationError(parent_id, name)

    def _descendants_of(self, category_id: int | None) -> set[int]:
        if category_id is None:
            return set()
        return {c.descendant for c in self._closure if c.ancestor == category_id}

    def create_category(self, params: CreateCategoryParams) -> int:
        """Insert a category under ``params.parent_id`` and return its id."""
        snapshot_parent = self._categories.get(params.parent_id)
        if snapshot_parent is not None:
            effective_parent_id = snapshot_parent.id
            parent_path = snapshot_parent.path
            parent_level = snapshot_parent.level
        else:
            effective_parent_id = ROOT_ID
            parent_path = ROOT_PATH
            parent_level = 0
        new_level = None if parent_level >= MAX_LEVEL else parent_level + 1

        if new_level is not None:
            self._check_unique(effective_parent_id, params.name)

        leaf_target = self._categories.get(effective_parent_id)

        if ROOT_ID not in self._categories:
            self._categories[ROOT_ID] = CategoryRow(
                id=ROOT_ID,
                parent_id=ROOT_ID,
                level=1,
                path=ROOT_PATH,
                name=ROOT_NAME,
                sort_order=0,
                is_leaf=False,
            )

        if leaf_target is not None and leaf_target.is_leaf:
            leaf_target.is_leaf = False

        if new_level is None:
            raise NoRowsError()

        if parent_path == ROOT_PATH:
            label = f"node_{uuid.uuid4()}"
        else:
            label = str(uuid.uuid4()).replace("-", "_")

        new_id = self._next_id
        self._next_id += 1
        now = _now()
        self._categories[new_id] = CategoryRow(
            id=new_id,
            parent_id=effective_parent_id,
            level=new_level,
            path=f"{parent_path}.{label}",
            name=params.name,
            sort_order=params.sort_order,
            is_leaf=new_level == MAX_LEVEL,
            created_at=now,
            updated_at=now,
        )
        inherited = [
            ClosureRow(c.ancestor, new_id, c.depth + 1)
            for c in self._closure
            if c.descendant == effective_parent_id
        ]
        self._closure.extend(inherited)
        self._closure.append(ClosureRow(new_id, new_id, 0))
        return new_id

    def delete_category(self, category_id: int | None) -> None:
        """Delete one category row and the closure rows of its subtree."""
        doomed = self._descendants_of(category_id)
        if category_id is not None:
            self._categories.pop(category_id, None)
        self._closure = [c for c in self._closure if c.descendant not in doomed]

    def delete_closure_relations(self, category_id: int | None) -> None:
        """Delete the closure rows of a category and all its descendants."""
        doomed = self._descendants_of(category_id)
        self._closure = [c for c in self._closure if c.descendant not in doomed]

    def get_category_by_id(self, category_id: int) -> CategoryRow:
        row = self._categories.get(category_id)
        if row is None:
            raise NoRowsError()
        return replace(row)

    def get_category_path(self, category_id: int) -> list[CategoryRow]:
        """Return the ancestors of a category, root first, itself last."""
        relations = sorted(
            (c for c in self._closure if c.descendant == category_id),
            key=lambda c: c.depth,
            reverse=True,
        )
        return [
            replace(self._categories[c.ancestor])
            for c in relations
            if c.ancestor in self._categories
        ]

    def get_closure_relations(self, category_id: int) -> list[ClosureRow]:
        return [replace(c) for c in self._closure if c.descendant == category_id]

    def get_leaf_categories(self) -> list[CategoryRow]:
        return [
            replace(row)
            for _, row in sorted(self._categories.items())
            if row.is_leaf and row.level == MAX_LEVEL
        ]

    def get_sub_tree(self, root_id: int | None) -> list[CategoryRow]:
        """Return a category and everything beneath it, ordered by path."""
        root = self._categories.get(root_id) if root_id is not None else None
        if root is None:
            return []
        rows = [r for r in self._categories.values() if _is_descendant_path(r.path, root.path)]
        rows.sort(key=lambda r: _labels(r.path))
        return [replace(r) for r in rows]

    def update_category_name(self, params: UpdateCategoryNameParams) -> None:
        row = self._categories.get(params.id)
        if row is None:
            return
        self._check_unique(row.parent_id, params.name, exclude=row.id)
        row.name = params.name
        row.updated_at = _now()

    def update_closure_depth(self, params: UpdateClosureDepthParams) -> None:
        """Shift the depth of a subtree's closure rows, keeping depths within 3."""
        if params.delta is None:
            return
        targets = self._descendants_of(params.category_id)
        for c in self._closure:
            if c.descendant in targets and c.depth + params.delta <= MAX_CLOSURE_DEPTH:
                c.depth += params.delta

    def update_parent_leaf_status(self, parent_id: int | None) -> None:
        """Mark a category as leaf exactly when no category names it as parent."""
        if parent_id is None:
            return
        row = self._categories.get(parent_id)
        if row is None:
            return
        row.is_leaf = not any(r.parent_id == parent_id for r in self._categories.values())
        row.updated_at = _now()