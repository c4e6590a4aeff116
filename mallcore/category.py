"""Category business objects, repository and use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from mallcore.category_models import (
    CategoryRow,
    CreateCategoryParams,
    NoRowsError,
    Queries,
    UpdateCategoryNameParams,
    UpdateClosureDepthParams,
)

logger = logging.getLogger(__name__)


class CategoryError(Exception):
    """A business error with an HTTP-style code and a machine-readable reason.

    Two errors are equal when their code and reason match.
    """

    def __init__(self, code: int, reason: str, message: str) -> None:
        self.code = code
        self.reason = reason
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"error: code = {self.code} reason = {self.reason} message = {self.message}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CategoryError):
            return NotImplemented
        return (self.code, self.reason) == (other.code, other.reason)

    def __hash__(self) -> int:
        return hash((self.code, self.reason))


ERR_PARENT_ID_UNPROCESSABLE = CategoryError(
    400, "PARENT_ID_UNPROCESSABLE_ENTITY", "category: invalid parent_id argument"
)
ERR_CATEGORY_NAME_NOT_FOUND = CategoryError(
    404, "CATEGORY_NAME_NOT_FOUND", "category: category name not found"
)
ERR_CATEGORY_NOT_FOUND = CategoryError(
    404, "CATEGORY_NOT_FOUND", "category: category not found"
)
ERR_CATEGORY_NAME_CONFLICT = CategoryError(409, "Already Exists ", "category name exists")
ERR_CATEGORY_FAILED = CategoryError(500, "Failed", "failed category")
ERR_CATEGORY_HAS_CHILDREN = CategoryError(403, "Forbidden", "存在子分类不可删除")


def _fresh(template: CategoryError) -> CategoryError:
    return CategoryError(template.code, template.reason, template.message)


def _to_int16(value: int) -> int:
    return ((int(value) + 0x8000) % 0x10000) - 0x8000


@dataclass
class Category:
    id: int = 0
    parent_id: int = 0
    level: int = 0
    path: str = ""
    name: str = ""
    sort_order: int = 0
    is_leaf: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class CreateCategoryReq:
    parent_id: int = 0
    name: str = ""
    sort_order: int = 0


@dataclass
class ClosureRelation:
    ancestor: int
    descendant: int
    depth: int


def _convert(row: CategoryRow) -> Category:
    return Category(
        id=row.id,
        parent_id=row.parent_id,
        level=int(row.level),
        path=row.path,
        name=row.name,
        sort_order=int(row.sort_order),
        is_leaf=row.is_leaf,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class CategoryRepository:
    """Maps store rows and store failures onto business objects and errors."""

    def __init__(self, queries: Queries) -> None:
        self._q = queries

    def get_category(self, category_id: int) -> Category:
        try:
            row = self._q.get_category_by_id(category_id)
        except NoRowsError as exc:
            raise _fresh(ERR_CATEGORY_NOT_FOUND) from exc
        except Exception as exc:
            raise RuntimeError(f"get category failed: {exc}") from exc
        return _convert(row)

    def delete_category(self, category_id: int) -> None:
        """Delete a category, its closure rows, and refresh the parent's leaf flag."""
        try:
            row = self._q.get_category_by_id(category_id)
        except NoRowsError as exc:
            raise _fresh(ERR_CATEGORY_NOT_FOUND) from exc
        except Exception as exc:
            raise RuntimeError(f"get category failed: {exc}") from exc

        try:
            self._q.delete_closure_relations(category_id)
        except Exception as exc:
            raise RuntimeError(f"delete closure relations failed: {exc}") from exc

        try:
            self._q.delete_category(category_id)
        except Exception as exc:
            raise RuntimeError(f"delete category failed: {exc}") from exc

        if row.parent_id != 0:
            try:
                self._q.update_parent_leaf_status(row.parent_id)
            except Exception as exc:
                raise RuntimeError(f"update parent leaf status failed: {exc}") from exc

    def get_sub_tree(self, root_id: int) -> list[Category]:
        try:
            rows = self._q.get_sub_tree(root_id)
        except NoRowsError as exc:
            raise _fresh(ERR_CATEGORY_NOT_FOUND) from exc
        except Exception as exc:
            raise RuntimeError(f"get subtree failed: {exc}") from exc
        return [_convert(r) for r in rows]

    def get_category_path(self, category_id: int) -> list[Category]:
        try:
            rows = self._q.get_category_path(category_id)
        except NoRowsError as exc:
            raise _fresh(ERR_CATEGORY_NOT_FOUND) from exc
        except Exception as exc:
            raise RuntimeError(f"get category path failed: {exc}") from exc
        return [_convert(r) for r in rows]

    def get_leaf_categories(self) -> list[Category]:
        try:
            rows = self._q.get_leaf_categories()
        except Exception as exc:
            raise RuntimeError(f"get leaf categories failed: {exc}") from exc
        return [_convert(r) for r in rows]

    def get_closure_relations(self, category_id: int) -> list[ClosureRelation]:
        try:
            rows = self._q.get_closure_relations(category_id)
        except Exception as exc:
            raise RuntimeError(f"get closure relations failed: {exc}") from exc
        return [ClosureRelation(r.ancestor, r.descendant, int(r.depth)) for r in rows]

    def update_closure_depth(self, category_id: int, delta: int) -> None:
        params = UpdateClosureDepthParams(delta=_to_int16(delta), category_id=category_id)
        try:
            self._q.update_closure_depth(params)
        except Exception as exc:
            raise RuntimeError(f"update closure depth failed: {exc}") from exc

    def create_category(self, req: CreateCategoryReq) -> Category:
        """Create a category; a parent id of 0 creates a top-level category."""
        if req.parent_id != 0:
            try:
                self._q.get_category_by_id(req.parent_id)
            except Exception as exc:
                raise _fresh(ERR_PARENT_ID_UNPROCESSABLE) from exc

        params = CreateCategoryParams(
            parent_id=req.parent_id,
            name=req.name,
            sort_order=_to_int16(req.sort_order),
        )
        try:
            new_id = self._q.create_category(params)
        except Exception as exc:
            if "unique constraint" in str(exc):
                raise _fresh(ERR_CATEGORY_NAME_NOT_FOUND) from exc
            raise CategoryError(500, "Failed", "failed to create category") from exc

        try:
            row = self._q.get_category_by_id(new_id)
        except Exception as exc:
            raise RuntimeError(f"get created category failed: {exc}") from exc
        return _convert(row)

    def update_category_name(self, category: Category) -> None:
        params = UpdateCategoryNameParams(name=category.name, id=category.id)
        try:
            self._q.update_category_name(params)
        except NoRowsError as exc:
            raise _fresh(ERR_CATEGORY_NAME_NOT_FOUND) from exc
        except Exception as exc:
            if "unique constraint" in str(exc):
                raise _fresh(ERR_CATEGORY_NAME_CONFLICT) from exc
            raise _fresh(ERR_CATEGORY_FAILED) from exc


class CategoryUsecase:
    """Business entry points for categories."""

    def __init__(self, repo: Any) -> None:
        self._repo = repo

    def create_category(self, req: CreateCategoryReq) -> Category:
        logger.debug("CreateCategory request: %r", req)
        return self._repo.create_category(req)

    def update_category_name(self, category: Category) -> None:
        logger.debug("UpdateCategory request: %r", category)
        return self._repo.update_category_name(category)

    def get_category(self, category_id: int) -> Category:
        logger.debug("GetCategory request: %d", category_id)
        return self._repo.get_category(category_id)

    def update_category(self, category: Category) -> None:
        logger.debug("UpdateCategory request: %r", category)
        return self._repo.update_category_name(category)

    def delete_category(self, category_id: int) -> None:
        logger.debug("DeleteCategory request: %d", category_id)
        return self._repo.delete_category(category_id)

    def get_sub_tree(self, root_id: int) -> list[Category]:
        logger.debug("GetSubTree request: %d", root_id)
        return self._repo.get_sub_tree(root_id)

    def get_category_path(self, category_id: int) -> list[Category]:
        logger.debug("GetCategoryPath request: %d", category_id)
        return self._repo.get_category_path(category_id)

    def get_leaf_categories(self) -> list[Category]:
        return self._repo.get_leaf_categories()

    def get_closure_relations(self, category_id: int) -> list[ClosureRelation]:
        logger.debug("GetClosureRelations request: %d", category_id)
        return self._repo.get_closure_relations(category_id)

    def update_closure_depth(self, category_id: int, delta: int) -> None:
        logger.debug("UpdateClosureDepth request: %d delta:%d", category_id, delta)
        return self._repo.update_closure_depth(category_id, delta)