"""
Sort parameter parsing

The sort parameter has the form "<field>_<direction>", eg. "created_at_desc" or "posts.title_asc".
Clauses that can't be parsed, or that reference a field that isn't a sortable column of the
model, are invalid: the collection is then returned unsorted, no error is raised.
"""

import re
from typing import Iterable, Optional
from sqlalchemy import inspect as sqla_inspect
import adminkit

ORDER_RE = re.compile(r"^([\w.]+)_(desc|asc)$")


class OrderClause:
    def __init__(self, clause: Optional[str]) -> None:
        self.clause = clause
        self.field = None
        self.order = None
        match = ORDER_RE.match(clause) if isinstance(clause, str) else None
        if match:
            self.field, self.order = match.groups()

    @property
    def valid(self) -> bool:
        return bool(self.field and self.order)

    @property
    def column_name(self) -> Optional[str]:
        """
        :return: field name without the table prefix
        """
        if not self.valid:
            return None
        return self.field.rsplit(".", 1)[-1]

    def to_criterion(self, model, sortable: Optional[Iterable[str]] = None):
        """
        :param model: sqla model class
        :param sortable: column names that may be sorted on, all columns if None
        :return: sqla order_by expression or None if the clause doesn't apply to the model
        """
        if not self.valid:
            return None

        if "." in self.field:
            table_name = self.field.rsplit(".", 1)[0]
            if table_name != getattr(model, "__tablename__", None):
                adminkit.log.debug(f"Can't sort {model} on {self.field}: unknown table {table_name}")
                return None

        column_name = self.column_name
        if sortable is not None and column_name not in sortable:
            adminkit.log.debug(f"{model.__name__}.{column_name} is not sortable")
            return None

        column_attrs = sqla_inspect(model).column_attrs
        if column_name not in column_attrs.keys():
            adminkit.log.debug(f"{model.__name__} has no column {column_name}")
            return None

        attr = getattr(model, column_name)
        return attr.desc() if self.order == "desc" else attr.asc()

    def __repr__(self) -> str:
        return f"<OrderClause {self.clause!r}{'' if self.valid else ' (invalid)'}>"
