"""RPC-facing category service: argument checks and status mapping."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum

from mallcore.category import (
    ERR_CATEGORY_HAS_CHILDREN,
    ERR_CATEGORY_NAME_CONFLICT,
    ERR_CATEGORY_NOT_FOUND,
    Category,
    CategoryUsecase,
    CreateCategoryReq,
)

logger = logging.getLogger(__name__)


class StatusCode(IntEnum):
    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16

    @property
    def label(self) -> str:
        if self is StatusCode.OK:
            return "OK"
        return "".join(part.capitalize() for part in self.name.split("_"))


class StatusError(Exception):
    """An RPC failure carrying a status code and description."""

    def __init__(self, code: StatusCode, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"rpc error: code = {self.code.label} desc = {self.message}"


@dataclass
class CategoryMessage:
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
class ClosureRelationMessage:
    ancestor: int
    descendant: int
    depth: int


def _to_message(category: Category, with_timestamps: bool = True) -> CategoryMessage:
    return CategoryMessage(
        id=category.id,
        parent_id=category.parent_id,
        level=category.level,
        path=category.path,
        name=category.name,
        sort_order=category.sort_order,
        is_leaf=category.is_leaf,
        created_at=category.created_at if with_timestamps else None,
        updated_at=category.updated_at if with_timestamps else None,
    )


def _invalid(message: str) -> StatusError:
    return StatusError(StatusCode.INVALID_ARGUMENT, message)


def _internal(exc: BaseException) -> StatusError:
    return StatusError(StatusCode.INTERNAL, str(exc))


class CategoryService:
    """Validates requests and turns business errors into status errors."""

    def __init__(self, usecase: CategoryUsecase) -> None:
        self._uc = usecase

    def create_category(self, parent_id: int, name: str, sort_order: int) -> CategoryMessage:
        if name == "":
            raise _invalid("分类名称不能为空")
        if sort_order < 0:
            raise _invalid("排序序号不能为负数")
        try:
            category = self._uc.create_category(
                CreateCategoryReq(parent_id=parent_id, name=name, sort_order=int(sort_order))
            )
        except Exception as exc:
            raise _internal(exc) from exc
        return _to_message(category, with_timestamps=False)

    def get_category(self, category_id: int) -> CategoryMessage:
        if category_id == 0:
            raise _invalid("分类ID不能为空")
        try:
            category = self._uc.get_category(category_id)
        except Exception as exc:
            if exc == ERR_CATEGORY_NOT_FOUND:
                raise StatusError(StatusCode.NOT_FOUND, "分类不存在") from exc
            raise _internal(exc) from exc
        return _to_message(category)

    def update_category(self, category_id: int, name: str) -> None:
        if category_id == 0:
            raise _invalid("分类ID不能为空")
        if name == "":
            raise _invalid("分类名称不能为空")
        try:
            self._uc.update_category_name(Category(id=category_id, name=name))
        except Exception as exc:
            if exc == ERR_CATEGORY_NOT_FOUND:
                raise StatusError(StatusCode.NOT_FOUND, "分类不存在") from exc
            if exc == ERR_CATEGORY_NAME_CONFLICT:
                raise StatusError(StatusCode.ALREADY_EXISTS, "分类名称已存在") from exc
            raise _internal(exc) from exc

    def delete_category(self, category_id: int) -> None:
        if category_id == 0:
            raise _invalid("分类ID不能为空")
        try:
            self._uc.delete_category(category_id)
        except Exception as exc:
            if exc == ERR_CATEGORY_NOT_FOUND:
                raise StatusError(StatusCode.NOT_FOUND, "分类不存在") from exc
            if exc == ERR_CATEGORY_HAS_CHILDREN:
                raise StatusError(StatusCode.FAILED_PRECONDITION, "存在子分类不可删除") from exc
            raise _internal(exc) from exc

    def get_sub_tree(self, root_id: int) -> Iterator[CategoryMessage]:
        """Stream a category and its descendants; errors are raised before streaming."""
        if root_id == 0:
            raise _invalid("根分类ID不能为空")
        try:
            categories = self._uc.get_sub_tree(root_id)
        except Exception as exc:
            if exc == ERR_CATEGORY_NOT_FOUND:
                raise StatusError(StatusCode.NOT_FOUND, "根分类不存在") from exc
            raise _internal(exc) from exc
        return (_to_message(c) for c in categories)

    def get_category_path(self, category_id: int) -> Iterator[CategoryMessage]:
        """Stream the path from the top-level ancestor down to the category."""
        if category_id == 0:
            raise _invalid("分类ID不能为空")
        try:
            categories = self._uc.get_category_path(category_id)
        except Exception as exc:
            if exc == ERR_CATEGORY_NOT_FOUND:
                raise StatusError(StatusCode.NOT_FOUND, "分类不存在") from exc
            raise _internal(exc) from exc
        return (_to_message(c) for c in categories)

    def get_leaf_categories(self) -> list[CategoryMessage]:
        try:
            leaves = self._uc.get_leaf_categories()
        except Exception as exc:
            raise _internal(exc) from exc
        logger.debug("GetLeafCategories res: %r", leaves)
        return [_to_message(c) for c in leaves]

    def get_closure_relations(self, category_id: int) -> Iterator[ClosureRelationMessage]:
        if category_id == 0:
            raise _invalid("分类ID不能为空")
        try:
            relations = self._uc.get_closure_relations(category_id)
        except Exception as exc:
            if exc == ERR_CATEGORY_NOT_FOUND:
                raise StatusError(StatusCode.NOT_FOUND, "分类不存在") from exc
            raise _internal(exc) from exc
        return (ClosureRelationMessage(r.ancestor, r.descendant, r.depth) for r in relations)

    def update_closure_depth(self, category_id: int, delta: int) -> None:
        if category_id == 0:
            raise _invalid("分类ID不能为空")
        if delta == 0:
            raise _invalid("深度变化值不能为0")
        try:
            self._uc.update_closure_depth(category_id, int(delta))
        except Exception as exc:
            if exc == ERR_CATEGORY_NOT_FOUND:
                raise StatusError(StatusCode.NOT_FOUND, "分类不存在") from exc
            raise _internal(exc) from exc