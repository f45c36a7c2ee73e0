"""
Request-scoped data access for admin resources

A DataAccess instance is created for every request, it provides the views with:
- the authorized, sorted, filtered, scoped, paginated and decorated collection (index)
- the authorized and decorated record (show, edit, update, destroy)
- new records (new, create)
and runs the resource callbacks around the mutations (build, create, update, save, destroy).

The collection and the record are computed at most once per request and cached in the
instance's RequestCache. Never share a DataAccess instance between requests.

Collection pipeline (find_collection):

    scoped_collection -> authorization scope -> sort -> filter -> scope -> paginate -> decorate

pagination is skipped for export formats (eg. csv).
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple
import adminkit
from .authorization import AuthorizationAdapter, READ, action_to_permission
from .callbacks import BUILD, CREATE, DESTROY, SAVE, UPDATE
from .decorators import CollectionDecorator, decorate_for_action
from .errors import NotFoundError, UnAuthorizedError
from .order_clause import OrderClause
from .pagination import MAX_PER_PAGE, paginate
from .request import RequestContext
from .resource_config import ResourceConfig
from .search import Search, SearchFilter, clean_search_params
from .store import SaveResult

# request parameter names
ID_PARAM = "id"
ORDER_PARAM = "order"
SCOPE_PARAM = "scope"
SEARCH_PARAM = "q"
PAGE_PARAM = "page"
PER_PAGE_PARAM = "per_page"
RESOURCE_PARAM = "resource"


class _Unset:
    def __repr__(self) -> str:
        return "<unset>"


UNSET = _Unset()


@dataclass
class RequestCache:
    """
    Values memoized for the lifetime of one request
    """

    collection: Any = UNSET
    collection_before_scope: Any = UNSET
    resource: Any = UNSET
    current_scope: Any = UNSET
    parent: Any = UNSET
    search: Any = UNSET
    # values of the submitted attributes that couldn't be assigned
    assignment_errors: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()


class DataAccess:
    """
    :param config: the resource configuration
    :param context: the current request
    :param store: persistence (SQLAlchemyStore)
    :param authorization: authorization adapter bound to the current user
    :param search_filter: filters the collection with the `q` parameters
    """

    def __init__(
        self,
        config: ResourceConfig,
        context: RequestContext,
        store,
        authorization: Optional[AuthorizationAdapter] = None,
        search_filter: Optional[SearchFilter] = None,
    ) -> None:
        self.config = config
        self.context = context
        self.store = store
        self.authorization = authorization if authorization is not None else AuthorizationAdapter(context.user)
        self.search_filter = search_filter if search_filter is not None else SearchFilter(config.filters)
        self.cache = RequestCache()

    @property
    def model(self):
        return self.config.model

    @property
    def action(self) -> str:
        return self.context.action

    @property
    def params(self) -> Mapping[str, Any]:
        return self.context.params

    #
    # Authorization
    #
    def authorized(self, permission: str, subject: Any) -> bool:
        return self.authorization.authorized(permission, subject)

    def authorize(self, permission: str, subject: Any) -> None:
        """
        :raises UnAuthorizedError: if the current user isn't allowed to perform `permission` on `subject`
        """
        if not self.authorized(permission, subject):
            raise UnAuthorizedError(f"{permission} {subject!r}")

    def authorize_resource(self, resource: Any) -> None:
        self.authorize(action_to_permission(self.action), resource)

    #
    # Collection
    #
    def collection(self):
        """
        Retrieve, memoize and authorize the current collection. The work is done in `find_collection`
        :return: the collection for the index
        """
        if self.cache.collection is UNSET:
            self.authorize(READ, self.model)
            self.cache.collection = self.find_collection()
        return self.cache.collection

    def find_collection(self):
        """
        Override this to perform some additional work before the collection is cached
        """
        collection = self.scoped_collection()

        collection = self.apply_authorization_scope(collection)
        collection = self.apply_sorting(collection)
        collection = self.apply_filtering(collection)
        collection = self.apply_scoping(collection)

        if not self.is_export():
            collection = self.apply_pagination(collection)

        collection = self.apply_collection_decorator(collection)

        return collection

    def scoped_collection(self):
        """
        Start point of the searches and the index, override to modify it.
        Should return a sqla query so the other stages can be applied on top
        """
        return self.end_of_association_chain()

    def end_of_association_chain(self):
        query = self.store.query(self.model)
        belongs_to = self.config.belongs_to
        if belongs_to is None:
            return query
        return belongs_to.chain(query, self.parent)

    @property
    def parent(self) -> Optional[Any]:
        """
        :return: parent record of nested resources, None for top level resources
        """
        if self.cache.parent is UNSET:
            belongs_to = self.config.belongs_to
            self.cache.parent = None if belongs_to is None else belongs_to.find_parent(self.store, self.params)
        return self.cache.parent

    def is_export(self) -> bool:
        return self.context.format in self.config.export_formats

    def apply_authorization_scope(self, collection):
        """
        Gives the authorization adapter a chance to pre-scope the collection
        """
        permission = action_to_permission(self.action)
        return self.authorization.scope_collection(collection, permission)

    def apply_sorting(self, chain):
        order_clause = OrderClause(self.params.get(ORDER_PARAM) or self.config.sort_order)
        criterion = order_clause.to_criterion(self.model, self.config.sortable)
        if criterion is None:
            if order_clause.clause:
                adminkit.log.debug(f"Ignoring sort order {order_clause.clause!r} for {self.config.name}")
            return chain
        return chain.order_by(None).order_by(criterion)

    def apply_filtering(self, chain):
        search = self.search_filter.apply(chain, self.model, clean_search_params(self.params.get(SEARCH_PARAM)))
        self.cache.search = search
        return search.result

    @property
    def search(self) -> Optional[Search]:
        return None if self.cache.search is UNSET else self.cache.search

    def apply_scoping(self, chain):
        self.cache.collection_before_scope = chain
        scope = self.current_scope
        if scope is None:
            return chain
        return scope.apply(chain, self.model)

    @property
    def collection_before_scope(self):
        """
        :return: the filtered collection without the current scope, used to count the records per scope
        """
        if self.cache.collection_before_scope is UNSET:
            return None
        return self.cache.collection_before_scope

    @property
    def current_scope(self):
        if self.cache.current_scope is UNSET:
            scope_id = self.params.get(SCOPE_PARAM)
            if scope_id:
                self.cache.current_scope = self.config.get_scope_by_id(scope_id)
            else:
                self.cache.current_scope = self.config.default_scope(self.context)
        return self.cache.current_scope

    def apply_pagination(self, chain):
        per_page = self.per_page()
        return paginate(chain, self.params.get(PAGE_PARAM), per_page, default_per_page=per_page, max_per_page=self.max_per_page())

    def per_page(self) -> int:
        if not self.config.paginate:
            return self.max_per_page()
        requested = self.params.get(PER_PAGE_PARAM)
        if requested is not None and self.config.per_page_options:
            try:
                requested = int(requested)
            except (TypeError, ValueError):
                requested = None
            if requested in self.config.per_page_options:
                return requested
        return self.config.per_page

    def max_per_page(self) -> int:
        return min(self.config.max_per_page, MAX_PER_PAGE)

    def decorate(self) -> bool:
        return decorate_for_action(self.action, self.config.decorator, self.config.decorate_forms)

    def apply_collection_decorator(self, collection):
        if self.decorate():
            return CollectionDecorator(collection, self.config.decorator)
        return collection

    def apply_decorator(self, resource):
        if self.decorate():
            return self.config.decorator(resource)
        return resource

    #
    # Resource
    #
    def resource(self):
        """
        Retrieve, memoize and authorize the record identified by the `id` parameter.
        Used by the member actions: show, edit, update and destroy
        """
        if self.cache.resource is UNSET:
            resource = self.find_resource()
            self.authorize_resource(resource)
            self.cache.resource = self.apply_decorator(resource)
        return self.cache.resource

    def find_resource(self):
        """
        Look up the record in the scoped collection (sorting, filtering and pagination don't apply)
        :raises NotFoundError: if the record doesn't exist
        """
        identifier = self.params.get(ID_PARAM)
        resource = None
        if identifier is not None:
            resource = self.config.finder.find(self.scoped_collection(), self.model, identifier)
        if resource is None:
            raise NotFoundError(f'Invalid "{self.model.__name__}" ID "{identifier}"')
        return resource

    def resource_params(self) -> Tuple[Mapping[str, Any], Optional[str]]:
        """
        :return: the submitted attributes and the role qualifier used to assign them
        """
        values = self.params.get(RESOURCE_PARAM) or {}
        return values, self.config.assign_role(self.context)

    def build_resource(self):
        """
        Build, memoize and authorize a new record. Used by the new and create actions
        :return: unsaved record
        """
        if self.cache.resource is UNSET:
            resource = self.build_new_resource()
            self.config.callbacks.run(BUILD, resource)
            self.authorize_resource(resource)
            self.cache.resource = self.apply_decorator(resource)
        return self.cache.resource

    def build_new_resource(self):
        record = self.config.builder.build(self.model, self.parent)
        values, role = self.resource_params()
        self.assign_attributes(record, values, role)
        return record

    def assign_attributes(self, obj, values: Mapping[str, Any], role: Optional[str] = None) -> None:
        """
        Mass-assign the submitted values, invalid values are reported by the next save
        """
        errors: List[str] = []
        self.store.assign_attributes(obj, values, role, self.config.permitted_params, errors)
        self.cache.assignment_errors = tuple(errors)

    def validators(self) -> Tuple[Callable[[Any], Any], ...]:
        return self.config.validators + (lambda record: list(self.cache.assignment_errors),)

    def create_resource(self, obj) -> Optional[SaveResult]:
        """
        Run the create callbacks around `save_resource`
        :return: result of the save, None if a callback halted the chain
        """
        return self.config.callbacks.run(CREATE, obj, lambda: self.save_resource(obj))

    def save_resource(self, obj) -> Optional[SaveResult]:
        """
        Run the save callbacks around persisting `obj`
        :return: falsy SaveResult when validation failed, None if a callback halted the chain
        """
        result = self.config.callbacks.run(SAVE, obj, lambda: self.store.save(obj, self.validators()))
        if result is not None:
            self.cache.errors = tuple(result.errors)
        return result

    def update_resource(self, obj, attributes: Sequence[Any]) -> Optional[SaveResult]:
        """
        Assign the attributes and run the update callbacks around `save_resource`
        :param attributes: [values, role], the role qualifier may be omitted or None
        """
        if isinstance(attributes, Mapping):
            values, role = attributes, None
        else:
            values = attributes[0] if attributes else {}
            role = attributes[1] if len(attributes) > 1 else None
        if isinstance(role, Mapping):
            role = role.get("as")
        self.assign_attributes(obj, values, role)
        return self.config.callbacks.run(UPDATE, obj, lambda: self.save_resource(obj))

    def destroy_resource(self, obj) -> Optional[bool]:
        """
        Run the destroy callbacks around deleting `obj`
        """
        return self.config.callbacks.run(DESTROY, obj, lambda: self.store.destroy(obj))

    @property
    def errors(self) -> Tuple[str, ...]:
        """
        :return: validation errors of the last save
        """
        return self.cache.errors

    def __repr__(self) -> str:
        return f"<DataAccess {self.config.name}#{self.action}>"
