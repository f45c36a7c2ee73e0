"""
Presentation decorators

A decorator wraps a record (or a collection of records) before it is handed to the
rendering layer, eg. to add formatted attributes:

    class PostDecorator(ResourceDecorator):
        @property
        def title_upper(self):
            return self.object.title.upper()

Attribute access falls through to the wrapped object.
"""

from typing import Any, Iterator, Optional, Type

FORM_ACTIONS = ("new", "create", "edit", "update")


class ResourceDecorator:
    def __init__(self, obj: Any) -> None:
        object.__setattr__(self, "object", obj)

    def __getattr__(self, attr_name):
        return getattr(self.object, attr_name)

    def __setattr__(self, attr_name, attr_val):
        if attr_name in type(self).__dict__:
            object.__setattr__(self, attr_name, attr_val)
        else:
            setattr(self.object, attr_name, attr_val)

    def __eq__(self, other):
        return undecorate(other) is self.object

    def __hash__(self):
        return hash(self.object)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.object!r}>"


class CollectionDecorator:
    """
    Lazy wrapper: records are decorated while iterating, other attributes
    (eg. page, total, count) are those of the wrapped collection
    """

    def __init__(self, collection: Any, decorator_class: Type[ResourceDecorator]) -> None:
        self.object = collection
        self.decorator_class = decorator_class

    def __iter__(self) -> Iterator[ResourceDecorator]:
        for item in self.object:
            yield self.decorator_class(item)

    def __getitem__(self, index):
        result = self.object[index]
        if isinstance(index, slice):
            return [self.decorator_class(item) for item in result]
        return self.decorator_class(result)

    def __getattr__(self, attr_name):
        return getattr(self.object, attr_name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.decorator_class.__name__} {self.object!r}>"


def undecorate(obj: Any) -> Any:
    """
    :return: the wrapped record for decorated records, `obj` otherwise
    """
    while isinstance(obj, (ResourceDecorator, CollectionDecorator)):
        obj = obj.object
    return obj


def decorate_for_action(action: Optional[str], decorator_class, decorate_forms: bool = False) -> bool:
    """
    Records are decorated for all actions when a decorator is configured,
    forms get the raw record unless `decorate_forms` is set
    """
    if decorator_class is None:
        return False
    if action in FORM_ACTIONS:
        return decorate_forms
    return True
