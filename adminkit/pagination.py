"""
Collection pagination

`paginate` windows a query with offset/limit. The returned Page is lazy: the query is
executed when the page is iterated or its `items` are accessed, the total count is only
queried when `total` (or `pages`, `has_next`) is used.

Pages are 1-based. Invalid page numbers fall back to the first page, page sizes are
clamped to 1..MAX_PER_PAGE.
"""

import math
from typing import Any, Iterator, List, Optional
from sqlalchemy.exc import CompileError
from sqlalchemy.orm import Query
import adminkit
from .errors import GenericError

# hard upper bound of a single page, also used when pagination is disabled for a resource
MAX_PER_PAGE = 10_000
# largest OFFSET sent to the database, higher page numbers are lowered to the last page below it
MAX_OFFSET = 2**31 - 1


def parse_page(page: Any) -> int:
    """
    :param page: requested page number (string from the query string, int or None)
    :return: page number >= 1
    """
    try:
        page = int(page)
    except (TypeError, ValueError):
        if page not in (None, ""):
            adminkit.log.debug(f"Invalid page number {page!r}")
        return 1
    return page if page > 0 else 1


def clamp_per_page(per_page: Any, default: int, maximum: int = MAX_PER_PAGE) -> int:
    try:
        per_page = int(per_page)
    except (TypeError, ValueError):
        per_page = default
    if per_page <= 0:
        per_page = 1
    if per_page > maximum:
        per_page = maximum
    return per_page


class Page:
    """
    A window on a query
    """

    def __init__(self, query: Query, page: int, per_page: int) -> None:
        self.query = query
        self.page = page
        self.per_page = per_page
        self._items: Optional[List[Any]] = None
        self._total: Optional[int] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def window(self) -> Query:
        """
        :return: the (unexecuted) offset/limit query
        """
        return self.query.offset(self.offset).limit(self.per_page)

    @property
    def items(self) -> List[Any]:
        if self._items is None:
            try:
                self._items = self.window.all()
            except OverflowError:
                raise GenericError("Pagination Overflow Error")
            except CompileError as exc:  # pragma: no cover
                # eg. mssql requires an order_by when using an OFFSET clause
                adminkit.log.warning(f"{exc} / Add a valid order parameter")
                raise GenericError(f"{exc}")
        return self._items

    @property
    def total(self) -> int:
        """
        Counting may take > 1s for a table with millions of records
        """
        if self._total is None:
            self._total = self.query.order_by(None).count()
        return self._total

    @property
    def pages(self) -> int:
        if self.total == 0:
            return 0
        return int(math.ceil(self.total / float(self.per_page)))

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index):
        return self.items[index]

    def __repr__(self) -> str:
        return f"<Page {self.page} per_page={self.per_page}>"


def paginate(query: Query, page: Any = None, per_page: Any = None, default_per_page: int = 30, max_per_page: int = MAX_PER_PAGE) -> Page:
    """
    :param query: sqla query (the collection)
    :param page: requested page number
    :param per_page: requested page size
    :param default_per_page: page size used when `per_page` is invalid
    :param max_per_page: upper bound of the page size
    :return: lazy Page
    """
    per_page = clamp_per_page(per_page, default_per_page, min(max_per_page, MAX_PER_PAGE))
    page = min(parse_page(page), MAX_OFFSET // per_page + 1)
    return Page(query, page, per_page)
