import pytest

from adminkit.pagination import MAX_OFFSET, MAX_PER_PAGE, Page, clamp_per_page, paginate, parse_page
from conftest import Post, db


@pytest.mark.parametrize("page, expected", [(None, 1), ("", 1), ("abc", 1), ("0", 1), (-2, 1), ("3", 3), (2, 2)])
def test_parse_page(page, expected: int) -> None:
    assert parse_page(page) == expected


def test_clamp_per_page() -> None:
    assert clamp_per_page(None, 30) == 30
    assert clamp_per_page("x", 30) == 30
    assert clamp_per_page("0", 30) == 1
    assert clamp_per_page(50, 30, maximum=40) == 40
    assert clamp_per_page(MAX_PER_PAGE * 2, 30) == MAX_PER_PAGE


def test_page_window(posts) -> None:
    query = db.session.query(Post).order_by(Post.views)
    page = paginate(query, page="2", per_page="3")

    assert isinstance(page, Page)
    assert page.offset == 3
    assert [post.views for post in page] == [30]
    assert len(page) == 1
    assert page.total == 4
    assert page.pages == 2
    assert page.has_prev
    assert not page.has_next


def test_page_is_lazy(posts) -> None:
    page = paginate(db.session.query(Post), per_page=2)
    assert page._items is None
    assert page._total is None
    assert page[0] is page.items[0]
    assert page.items is page.items


def test_empty_page(app) -> None:
    page = paginate(db.session.query(Post))
    assert page.total == 0
    assert page.pages == 0
    assert not page.has_next
    assert list(page) == []


def test_max_per_page_caps_page_size(app) -> None:
    page = paginate(db.session.query(Post), per_page=500, max_per_page=100)
    assert page.per_page == 100
    page = paginate(db.session.query(Post), per_page=500, max_per_page=MAX_PER_PAGE * 10)
    assert page.per_page == 500


def test_huge_page_number_is_lowered(posts) -> None:
    page = paginate(db.session.query(Post), page=10**30, per_page=10)
    assert page.page == MAX_OFFSET // 10 + 1
    assert page.offset <= MAX_OFFSET
    assert list(page) == []
    assert page.total == 4
