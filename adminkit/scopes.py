"""
Named scopes: predicates selectable per request with the `scope` parameter

    Scope("All")
    Scope("Published", lambda query: query.filter(Post.published.is_(True)), default=True)
    Scope("Drafts", "drafts")  # calls the Post.drafts(query) classmethod
"""

import re
from typing import Any, Callable, Optional, Union
import adminkit

Predicate = Union[None, str, Callable[[Any], Any]]


def scope_id(name: str) -> str:
    """
    :return: parameter value used to select the scope, eg. "Recently Published" -> "recently_published"
    """
    return re.sub(r"[^a-z0-9]+", "_", str(name).lower()).strip("_")


class Scope:
    """
    :param name: display name
    :param predicate: callable(query) -> query, a model classmethod name or None (no filtering)
    :param id: parameter value, derived from the name if not given
    :param default: bool or callable(context) -> bool, the first default scope is used
                    when the request doesn't select one
    """

    def __init__(self, name: str, predicate: Predicate = None, id: Optional[str] = None, default: Union[bool, Callable[[Any], bool]] = False) -> None:
        # pylint: disable=redefined-builtin
        self.name = name
        self.predicate = predicate
        self.id = id if id is not None else scope_id(name)
        self.default = default

    def is_default(self, context: Any = None) -> bool:
        if callable(self.default):
            return bool(self.default(context))
        return bool(self.default)

    def apply(self, collection, model=None):
        return scope_chain(self, collection, model)

    def __eq__(self, other):
        return isinstance(other, Scope) and other.id == self.id and other.predicate == self.predicate

    def __hash__(self):
        return hash(self.id)

    def __repr__(self) -> str:
        return f"<Scope {self.id}>"


def scope_chain(scope: Scope, chain, model=None):
    """
    Apply `scope` to the query `chain`
    :param model: model class used to look up named (classmethod) predicates
    """
    predicate = scope.predicate
    if predicate is None:
        return chain
    if isinstance(predicate, str):
        method = getattr(model, predicate, None)
        if not callable(method):
            raise AttributeError(f'{model} has no scope method "{predicate}" (scope {scope.id})')
        adminkit.log.debug(f"Applying scope {scope.id}: {model.__name__}.{predicate}")
        return method(chain)
    adminkit.log.debug(f"Applying scope {scope.id}")
    return predicate(chain)
