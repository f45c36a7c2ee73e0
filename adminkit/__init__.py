# flake8: noqa: F401
#
# The logger is created first (admin_init), the other modules use `adminkit.log`
#
from .admin_init import AdminKit, log
from .errors import AdminError, ValidationError, GenericError, UnAuthorizedError, NotFoundError
from .authorization import AuthorizationAdapter, RuleAuthorization, READ, CREATE, UPDATE, DESTROY, action_to_permission
from .callbacks import CallbackRegistry, STAGES
from .data_access import DataAccess, RequestCache
from .decorators import ResourceDecorator, CollectionDecorator, undecorate
from .order_clause import OrderClause
from .pagination import MAX_PER_PAGE, Page, paginate
from .request import AdminRequest, RequestContext
from .resource_config import ResourceConfig
from .scopes import Scope
from .search import SearchFilter, clean_search_params
from .store import SQLAlchemyStore, SaveResult
from .strategies import BelongsTo, BuildViaAssociation, BuildViaFactory, FindByAttribute, FindByPrimaryKey
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    #
    "AdminKit",
    "log",
    # request pipeline:
    "DataAccess",
    "RequestCache",
    "RequestContext",
    "AdminRequest",
    "ResourceConfig",
    # collaborators:
    "AuthorizationAdapter",
    "RuleAuthorization",
    "CallbackRegistry",
    "SearchFilter",
    "SQLAlchemyStore",
    "SaveResult",
    "Scope",
    "OrderClause",
    "Page",
    "paginate",
    "ResourceDecorator",
    "CollectionDecorator",
    "undecorate",
    "clean_search_params",
    # strategies:
    "BelongsTo",
    "BuildViaAssociation",
    "BuildViaFactory",
    "FindByAttribute",
    "FindByPrimaryKey",
    # constants:
    "MAX_PER_PAGE",
    "STAGES",
    "READ",
    "CREATE",
    "UPDATE",
    "DESTROY",
    "action_to_permission",
    # Errors:
    "AdminError",
    "ValidationError",
    "GenericError",
    "UnAuthorizedError",
    "NotFoundError",
)
