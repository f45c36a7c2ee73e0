"""
Finder and builder strategies, selected when a resource is registered

Finders look up a single record in a collection:
- FindByPrimaryKey: the default
- FindByAttribute: eg. a slug column

Builders instantiate new (unsaved) records:
- BuildViaFactory: `model()`
- BuildViaAssociation: the record gets the parent's foreign key values

BelongsTo describes the association chain of nested resources, eg. /admin/users/1/posts:
the base collection only contains the posts of user 1
"""

from typing import Any, Mapping, Optional
from sqlalchemy import inspect as sqla_inspect
from sqlalchemy.orm import with_parent
import adminkit
from .errors import NotFoundError


def coerce_identifier(column, identifier: Any) -> Any:
    """
    :param column: sqla column
    :param identifier: request identifier, usually a string
    :return: identifier converted to the column's python type
    :raises ValueError: if the identifier can't be converted
    """
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return identifier
    if isinstance(identifier, python_type):
        return identifier
    return python_type(identifier)


class FindByPrimaryKey:
    def find(self, collection, model, identifier: Any) -> Optional[Any]:
        """
        :param collection: sqla query of the base collection
        :return: record or None
        """
        column = sqla_inspect(model).primary_key[0]
        try:
            value = coerce_identifier(column, identifier)
        except (TypeError, ValueError):
            adminkit.log.debug(f'Invalid "{model.__name__}" id "{identifier}"')
            return None
        return collection.filter(column == value).first()

    def __repr__(self) -> str:
        return "FindByPrimaryKey()"


class FindByAttribute:
    def __init__(self, attr_name: str) -> None:
        self.attr_name = attr_name

    def find(self, collection, model, identifier: Any) -> Optional[Any]:
        column_attrs = sqla_inspect(model).column_attrs
        if self.attr_name not in column_attrs.keys():
            raise AttributeError(f'{model.__name__} has no column "{self.attr_name}"')
        column = column_attrs[self.attr_name].columns[0]
        try:
            value = coerce_identifier(column, identifier)
        except (TypeError, ValueError):
            return None
        return collection.filter(getattr(model, self.attr_name) == value).first()

    def __repr__(self) -> str:
        return f"FindByAttribute({self.attr_name!r})"


class BuildViaFactory:
    def build(self, model, parent: Any = None) -> Any:
        return model()

    def __repr__(self) -> str:
        return "BuildViaFactory()"


class BuildViaAssociation:
    """
    :param relationship: name of the parent relationship holding the built records

    The record gets the foreign key values of the parent, it isn't added to the parent
    collection (nor to the session) until it is saved
    """

    def __init__(self, relationship: str) -> None:
        self.relationship = relationship

    def build(self, model, parent: Any = None) -> Any:
        record = model()
        if parent is None:
            # optional parent not given in the request
            return record
        parent_mapper = sqla_inspect(type(parent))
        if self.relationship not in parent_mapper.relationships.keys():
            raise AttributeError(f'{type(parent).__name__} has no relationship "{self.relationship}"')
        relationship = parent_mapper.relationships[self.relationship]
        if not relationship.uselist or relationship.secondary is not None:
            raise TypeError(f"{type(parent).__name__}.{self.relationship} is not a one-to-many relationship")
        record_mapper = sqla_inspect(model)
        for local, remote in relationship.local_remote_pairs:
            parent_key = parent_mapper.get_property_by_column(local).key
            record_key = record_mapper.get_property_by_column(remote).key
            setattr(record, record_key, getattr(parent, parent_key))
        return record

    def __repr__(self) -> str:
        return f"BuildViaAssociation({self.relationship!r})"


class BelongsTo:
    """
    :param parent_model: model class of the parent
    :param relationship: name of the parent relationship that holds the child records
    :param param: request parameter holding the parent id, eg. "user_id"
    :param optional: if True the resource is also available without parent
    :param finder: finder used to look up the parent
    """

    def __init__(self, parent_model, relationship: str, param: Optional[str] = None, optional: bool = False, finder=None) -> None:
        self.parent_model = parent_model
        self.relationship = relationship
        self.param = param if param is not None else f"{parent_model.__name__.lower()}_id"
        self.optional = optional
        self.finder = finder if finder is not None else FindByPrimaryKey()

    def find_parent(self, store, params: Mapping[str, Any]) -> Optional[Any]:
        """
        :return: the parent record, None if the parent is optional and not requested
        :raises NotFoundError: if the parent doesn't exist or isn't given for a required parent
        """
        parent_id = params.get(self.param)
        if parent_id in (None, ""):
            if self.optional:
                return None
            raise NotFoundError(f'Missing "{self.param}" parameter')
        parent = self.finder.find(store.query(self.parent_model), self.parent_model, parent_id)
        if parent is None:
            raise NotFoundError(f'Invalid "{self.parent_model.__name__}" ID "{parent_id}"')
        return parent

    def chain(self, query, parent: Any):
        """
        :return: `query` restricted to the records related to `parent`
        """
        if parent is None:
            return query
        return query.filter(with_parent(parent, getattr(self.parent_model, self.relationship)))

    def __repr__(self) -> str:
        return f"BelongsTo({self.parent_model.__name__}, {self.relationship!r}, param={self.param!r})"
