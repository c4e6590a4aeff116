import pytest

from mallcore.category import (
    ERR_CATEGORY_FAILED,
    ERR_CATEGORY_NAME_CONFLICT,
    ERR_CATEGORY_NAME_NOT_FOUND,
    ERR_CATEGORY_NOT_FOUND,
    ERR_PARENT_ID_UNPROCESSABLE,
    Category,
    CategoryError,
    CategoryRepository,
    CategoryUsecase,
    ClosureRelation,
    CreateCategoryReq,
)
from mallcore.category_models import MAX_LEVEL, Queries


@pytest.fixture
def repo():
    return CategoryRepository(Queries())


def _chain(repo, depth):
    nodes = []
    parent = 0
    for i in range(depth):
        node = repo.create_category(CreateCategoryReq(parent_id=parent, name=f"n{i}"))
        nodes.append(node)
        parent = node.id
    return nodes


def test_create_top_level_category(repo):
    cat = repo.create_category(CreateCategoryReq(parent_id=0, name="Books", sort_order=3))
    assert cat.parent_id == 0
    assert cat.name == "Books"
    assert cat.sort_order == 3
    assert cat.path.startswith("root.node_")
    assert cat.is_leaf is False
    assert repo.get_category(cat.id) == cat


def test_child_extends_parent(repo):
    parent, child = _chain(repo, 2)
    assert child.parent_id == parent.id
    assert child.level == parent.level + 1
    assert child.path.startswith(parent.path + ".")


def test_unknown_parent_rejected(repo):
    with pytest.raises(CategoryError) as info:
        repo.create_category(CreateCategoryReq(parent_id=999, name="x"))
    assert info.value == ERR_PARENT_ID_UNPROCESSABLE


def test_duplicate_name_under_same_parent(repo):
    repo.create_category(CreateCategoryReq(parent_id=0, name="dup"))
    with pytest.raises(CategoryError) as info:
        repo.create_category(CreateCategoryReq(parent_id=0, name="dup"))
    assert info.value == ERR_CATEGORY_NAME_NOT_FOUND


def test_deepest_level_is_leaf_and_refuses_children(repo):
    nodes = _chain(repo, MAX_LEVEL)
    assert nodes[-1].level == MAX_LEVEL
    assert nodes[-1].is_leaf is True
    assert [n.id for n in repo.get_leaf_categories()] == [nodes[-1].id]
    with pytest.raises(CategoryError) as info:
        repo.create_category(CreateCategoryReq(parent_id=nodes[-1].id, name="too deep"))
    assert info.value == ERR_CATEGORY_FAILED
    assert info.value.message == "failed to create category"


def test_get_missing_category(repo):
    with pytest.raises(CategoryError) as info:
        repo.get_category(42)
    assert info.value == ERR_CATEGORY_NOT_FOUND


def test_path_is_root_first(repo):
    nodes = _chain(repo, 3)
    path = repo.get_category_path(nodes[-1].id)
    assert [c.id for c in path] == [n.id for n in nodes]


def test_closure_relations(repo):
    a, b, c = _chain(repo, 3)
    relations = repo.get_closure_relations(c.id)
    got = sorted(((r.ancestor, r.depth) for r in relations), key=lambda t: t[1])
    assert [anc for anc, _ in got] == [c.id, b.id, a.id]
    assert [d for _, d in got] == sorted(d for _, d in got)
    assert all(isinstance(r, ClosureRelation) and r.descendant == c.id for r in relations)


def test_sub_tree_contains_descendants(repo):
    a, b, c = _chain(repo, 3)
    other = repo.create_category(CreateCategoryReq(parent_id=0, name="other"))
    tree = repo.get_sub_tree(a.id)
    assert tree[0].id == a.id
    assert {t.id for t in tree} == {a.id, b.id, c.id}
    assert other.id not in {t.id for t in tree}


def test_delete_updates_parent_leaf_flag(repo):
    parent, child = _chain(repo, 2)
    repo.delete_category(child.id)
    with pytest.raises(CategoryError) as info:
        repo.get_category(child.id)
    assert info.value == ERR_CATEGORY_NOT_FOUND
    assert repo.get_category(parent.id).is_leaf is True
    assert repo.get_closure_relations(child.id) == []


def test_delete_missing(repo):
    with pytest.raises(CategoryError) as info:
        repo.delete_category(77)
    assert info.value == ERR_CATEGORY_NOT_FOUND


def test_update_name_and_conflict(repo):
    first = repo.create_category(CreateCategoryReq(parent_id=0, name="first"))
    second = repo.create_category(CreateCategoryReq(parent_id=0, name="second"))
    repo.update_category_name(Category(id=first.id, name="renamed"))
    assert repo.get_category(first.id).name == "renamed"
    with pytest.raises(CategoryError) as info:
        repo.update_category_name(Category(id=second.id, name="renamed"))
    assert info.value == ERR_CATEGORY_NAME_CONFLICT


def test_update_closure_depth_shifts_subtree(repo):
    parent, child = _chain(repo, 2)
    before = {(r.ancestor, r.depth) for r in repo.get_closure_relations(child.id)}
    repo.update_closure_depth(child.id, 1)
    after = {(r.ancestor, r.depth) for r in repo.get_closure_relations(child.id)}
    assert after == {(anc, d + 1) for anc, d in before}


def test_error_equality_uses_code_and_reason():
    same = CategoryError(404, "CATEGORY_NOT_FOUND", "other text")
    assert same == ERR_CATEGORY_NOT_FOUND
    assert same != ERR_CATEGORY_NAME_NOT_FOUND
    assert "CATEGORY_NOT_FOUND" in str(same)


class _RecordingRepo:
    def __init__(self):
        self.calls = []

    def update_category_name(self, category):
        self.calls.append(("update_category_name", category.id))

    def get_leaf_categories(self):
        self.calls.append(("get_leaf_categories",))
        return []


def test_usecase_update_category_delegates_to_rename():
    fake = _RecordingRepo()
    uc = CategoryUsecase(fake)
    uc.update_category(Category(id=5, name="x"))
    uc.update_category_name(Category(id=6, name="y"))
    assert fake.calls == [("update_category_name", 5), ("update_category_name", 6)]


def test_usecase_round_trip_with_real_repo(repo):
    uc = CategoryUsecase(repo)
    created = uc.create_category(CreateCategoryReq(parent_id=0, name="toys"))
    assert uc.get_category(created.id).name == "toys"
    uc.delete_category(created.id)
    with pytest.raises(CategoryError):
        uc.get_category(created.id)