"""Resource-level configuration.

A ResourceConfig is created once, when a model is registered (see AdminKit.register),
and passed to every request's DataAccess pipeline. It is immutable: use
``with_overrides`` to derive a modified configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Optional, Tuple, Type

from sqlalchemy import inspect as sqla_inspect

from .callbacks import CallbackRegistry
from .pagination import MAX_PER_PAGE
from .scopes import Scope
from .strategies import BelongsTo, BuildViaAssociation, BuildViaFactory, FindByAttribute, FindByPrimaryKey

DEFAULT_PER_PAGE = 30


def default_sort_order(model) -> str:
    """
    :return: descending primary key, eg. "id_desc"
    """
    mapper = sqla_inspect(model)
    pk_column = mapper.primary_key[0]
    return f"{mapper.get_property_by_column(pk_column).key}_desc"


def default_name(model) -> str:
    return getattr(model, "__tablename__", None) or model.__name__.lower()


@dataclass(frozen=True)
class ResourceConfig:
    """Configuration for a single admin resource (a model class)."""

    model: Type[Any]
    name: str
    paginate: bool = True
    per_page: int = DEFAULT_PER_PAGE
    max_per_page: int = MAX_PER_PAGE
    # page sizes that may be requested with the `per_page` parameter
    per_page_options: Tuple[int, ...] = ()
    sort_order: Optional[str] = None
    sortable: Optional[Tuple[str, ...]] = None
    filters: Optional[Tuple[str, ...]] = None
    scopes: Tuple[Scope, ...] = ()
    decorator: Optional[Type[Any]] = None
    decorate_forms: bool = False
    finder: Any = field(default_factory=FindByPrimaryKey)
    builder: Any = field(default_factory=BuildViaFactory)
    belongs_to: Optional[BelongsTo] = None
    # role -> names of the attributes that may be mass-assigned
    permitted_params: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    # role qualifier used for mass-assignment: a role name or callable(context) -> role name
    role: Any = None
    validators: Tuple[Callable[[Any], Any], ...] = ()
    callbacks: CallbackRegistry = field(default_factory=CallbackRegistry)
    export_formats: Tuple[str, ...] = ("csv",)

    def __post_init__(self) -> None:
        if self.sort_order is None:
            object.__setattr__(self, "sort_order", default_sort_order(self.model))
        if not self.callbacks.frozen:
            self.callbacks.freeze()
        scope_ids = [scope.id for scope in self.scopes]
        if len(set(scope_ids)) != len(scope_ids):
            raise ValueError(f"Duplicate scope ids for {self.name}: {scope_ids}")

    @classmethod
    def build(cls, model, name: Optional[str] = None, find_by: Optional[str] = None, **options) -> "ResourceConfig":
        """Create the configuration of `model`, selecting the finder and builder strategies.

        :param find_by: column used to look up records instead of the primary key
        :param options: ResourceConfig fields
        """
        belongs_to = options.get("belongs_to")
        if find_by is not None and "finder" not in options:
            options["finder"] = FindByAttribute(find_by)
        if belongs_to is not None and "builder" not in options:
            options["builder"] = BuildViaAssociation(belongs_to.relationship)
        for tuple_field in ("per_page_options", "sortable", "filters", "scopes", "validators", "export_formats"):
            if options.get(tuple_field) is not None:
                options[tuple_field] = tuple(options[tuple_field])
        if "permitted_params" in options:
            options["permitted_params"] = {role: tuple(names) for role, names in options["permitted_params"].items()}
        return cls(model=model, name=name or default_name(model), **options)

    def with_overrides(self, **overrides) -> "ResourceConfig":
        """Return a new config where known fields are replaced by ``overrides``."""
        valid = {k: v for k, v in overrides.items() if k in self.__dataclass_fields__}
        if not valid:
            return self
        return replace(self, **valid)

    def get_scope_by_id(self, scope_id: Any) -> Optional[Scope]:
        for scope in self.scopes:
            if scope.id == str(scope_id):
                return scope
        return None

    def assign_role(self, context: Any = None) -> Optional[str]:
        if callable(self.role):
            return self.role(context)
        return self.role

    def default_scope(self, context: Any = None) -> Optional[Scope]:
        for scope in self.scopes:
            if scope.is_default(context):
                return scope
        return None
