import pytest

from adminkit.order_clause import OrderClause
from conftest import Post, db


@pytest.mark.parametrize(
    "clause, field, order",
    [
        ("id_desc", "id", "desc"),
        ("created_at_asc", "created_at", "asc"),
        ("posts.title_asc", "posts.title", "asc"),
    ],
)
def test_valid_clauses(clause: str, field: str, order: str) -> None:
    order_clause = OrderClause(clause)
    assert order_clause.valid
    assert order_clause.field == field
    assert order_clause.order == order


@pytest.mark.parametrize("clause", [None, "", "title", "title_up", "_desc", "title desc"])
def test_invalid_clauses(clause) -> None:
    order_clause = OrderClause(clause)
    assert not order_clause.valid
    assert order_clause.column_name is None
    assert order_clause.to_criterion(Post) is None


def test_column_name_strips_table() -> None:
    assert OrderClause("posts.title_asc").column_name == "title"


def test_criterion_rejects_foreign_table_and_unknown_column(app) -> None:
    assert OrderClause("users.name_asc").to_criterion(Post) is None
    assert OrderClause("nothing_asc").to_criterion(Post) is None


def test_criterion_respects_sortable(app) -> None:
    assert OrderClause("views_desc").to_criterion(Post, sortable=("title",)) is None
    assert OrderClause("title_desc").to_criterion(Post, sortable=("title",)) is not None


def test_criterion_orders_query(posts) -> None:
    query = db.session.query(Post)
    ascending = query.order_by(OrderClause("views_asc").to_criterion(Post)).all()
    descending = query.order_by(OrderClause("posts.views_desc").to_criterion(Post)).all()
    assert [post.views for post in ascending] == [0, 5, 10, 30]
    assert [post.views for post in descending] == [30, 10, 5, 0]
