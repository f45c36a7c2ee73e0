"""
Filtering of collections with a nested predicate map, eg. the `q` query string parameters:

    q[title_cont]=flask&q[comments_count_gteq]=2&q[author][name_eq]=jane

is parsed (see request.AdminRequest) into

    {"title_cont": "flask", "comments_count_gteq": "2", "author": {"name_eq": "jane"}}

Keys are "<attribute>_<predicate>", nested maps are keyed by a relationship name and
filter the related records. Blank values are removed before the search is applied
(see clean_search_params), unknown attributes and predicates are ignored.
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
from sqlalchemy import and_, inspect as sqla_inspect
from sqlalchemy.orm import Query
import adminkit
from .attr_parse import parse_attr
from .errors import ValidationError

LIKE_ESCAPE = "\\"


def _escape_like(value: Any) -> str:
    value = str(value)
    for char in (LIKE_ESCAPE, "%", "_"):
        value = value.replace(char, LIKE_ESCAPE + char)
    return value


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [val for val in str(value).split(",") if val != ""]


def _truthy(value: Any) -> bool:
    return str(value).strip().lower() not in ("0", "false", "f", "no", "off", "")


# predicate name -> (value parsing, criterion factory)
# value parsing: "column" parses the value to the column type, "list" parses each csv item,
# "raw" keeps the value
PREDICATES = {
    "eq": ("column", lambda attr, val: attr == val),
    "not_eq": ("column", lambda attr, val: attr != val),
    "cont": ("raw", lambda attr, val: attr.ilike(f"%{_escape_like(val)}%", escape=LIKE_ESCAPE)),
    "not_cont": ("raw", lambda attr, val: ~attr.ilike(f"%{_escape_like(val)}%", escape=LIKE_ESCAPE)),
    "start": ("raw", lambda attr, val: attr.ilike(f"{_escape_like(val)}%", escape=LIKE_ESCAPE)),
    "end": ("raw", lambda attr, val: attr.ilike(f"%{_escape_like(val)}", escape=LIKE_ESCAPE)),
    "gt": ("column", lambda attr, val: attr > val),
    "gteq": ("column", lambda attr, val: attr >= val),
    "lt": ("column", lambda attr, val: attr < val),
    "lteq": ("column", lambda attr, val: attr <= val),
    "in": ("list", lambda attr, val: attr.in_(val)),
    "not_in": ("list", lambda attr, val: attr.not_in(val)),
    "null": ("raw", lambda attr, val: attr.is_(None) if _truthy(val) else attr.is_not(None)),
    "present": ("raw", lambda attr, val: and_(attr.is_not(None), attr != "") if _truthy(val) else ~and_(attr.is_not(None), attr != "")),
}

# match the longest suffix first: "not_eq" before "eq"
_PREDICATE_NAMES = sorted(PREDICATES, key=len, reverse=True)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def clean_search_params(params: Any) -> Dict[str, Any]:
    """
    Remove blank values from the (nested) search parameters
    :param params: predicate map
    :return: copy of `params` without blank leaves and without empty nested maps
    """
    if not isinstance(params, Mapping):
        return {}

    result = {}
    for key, value in params.items():
        if isinstance(value, Mapping):
            value = clean_search_params(value)
        elif isinstance(value, (list, tuple)):
            value = [item for item in value if not is_blank(item)]
        if is_blank(value):
            continue
        result[key] = value
    return result


def split_predicate(key: str) -> Tuple[Optional[str], Optional[str]]:
    """
    :param key: eg. "created_at_gteq"
    :return: ("created_at", "gteq") or (None, None) if no predicate matches
    """
    for name in _PREDICATE_NAMES:
        suffix = "_" + name
        if key.endswith(suffix) and len(key) > len(suffix):
            return key[: -len(suffix)], name
    return None, None


class Search:
    """
    Result of applying a predicate map to a query
    """

    def __init__(self, base, conditions: Dict[str, Any], result) -> None:
        self.base = base
        self.conditions = conditions
        self.result = result

    def __repr__(self) -> str:
        return f"<Search {self.conditions}>"


class SearchFilter:
    """
    Translates predicate maps into sqla filter expressions
    :param filterable: attribute names that may be filtered on (top level model only), all columns if None
    """

    def __init__(self, filterable: Optional[Iterable[str]] = None) -> None:
        self.filterable = None if filterable is None else frozenset(filterable)

    def apply(self, query, model, predicates: Mapping[str, Any]) -> Search:
        """
        :param query: sqla query
        :param model: the model class queried by `query`
        :param predicates: cleaned predicate map
        :return: Search, its `result` is the filtered query
        """
        if not isinstance(query, Query):
            adminkit.log.debug(f"Filtering not implemented for {type(query)}")
            return Search(query, {}, query)

        applied = {}
        expressions = self.expressions(model, predicates, applied, self.filterable)
        result = query.filter(*expressions) if expressions else query
        return Search(query, applied, result)

    def expressions(self, model, predicates: Mapping[str, Any], applied: Dict[str, Any], filterable=None) -> list:
        mapper = sqla_inspect(model)
        columns = mapper.column_attrs
        relationships = mapper.relationships
        result = []

        for key, value in predicates.items():
            if isinstance(value, Mapping):
                if key not in relationships.keys():
                    adminkit.log.warning(f"Invalid filter {model.__name__}.{key}: not a relationship")
                    continue
                if filterable is not None and key not in filterable:
                    adminkit.log.warning(f"{model.__name__}.{key} is not filterable")
                    continue
                rel_applied = {}
                rel_expressions = self.expressions(relationships[key].mapper.class_, value, rel_applied)
                if not rel_expressions:
                    continue
                rel_attr = getattr(model, key)
                criterion = and_(*rel_expressions)
                if relationships[key].uselist:
                    result.append(rel_attr.any(criterion))
                else:
                    result.append(rel_attr.has(criterion))
                applied[key] = rel_applied
                continue

            attr_name, predicate = split_predicate(key)
            if predicate is None or attr_name not in columns.keys():
                adminkit.log.warning(f"Invalid filter {model.__name__}.{key}")
                continue
            if filterable is not None and attr_name not in filterable:
                adminkit.log.warning(f"{model.__name__}.{attr_name} is not filterable")
                continue

            parsing, factory = PREDICATES[predicate]
            column = columns[attr_name].columns[0]
            try:
                if parsing == "column":
                    parsed = parse_attr(column, value)
                elif parsing == "list":
                    parsed = [parse_attr(column, item) for item in _as_list(value)]
                else:
                    parsed = value
            except ValidationError as exc:
                adminkit.log.warning(f"Ignoring filter {key}: {exc}")
                continue

            result.append(factory(getattr(model, attr_name), parsed))
            applied[key] = value

        return result
