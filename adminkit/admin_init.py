import logging
import os
import sys
from flask import Flask
import flask.app
from typing import Any, Callable, Dict, Optional
from .authorization import AuthorizationAdapter
from .data_access import DataAccess
from .config import get_config, get_int_config
from .request import AdminRequest, RequestContext
from .resource_config import DEFAULT_PER_PAGE, ResourceConfig
from .pagination import MAX_PER_PAGE
from .store import SQLAlchemyStore
from .views import expose_resource


class AdminKit:
    """This class configures the Flask application to serve admin resources
    :param app: a Flask application.
    :param db: Flask-SQLAlchemy extension, `app.extensions["sqlalchemy"]` if not given
    :param url_prefix: URL prefix of the admin views. Default is '/admin'
    :param authorization: AuthorizationAdapter (class or instance) deciding what the current user may do
    :param current_user: callable returning the principal of the current request
    """

    # Configuration settings are stored as class variables, they can be overridden in app.config
    DEFAULT_PER_PAGE = DEFAULT_PER_PAGE
    MAX_PER_PAGE = MAX_PER_PAGE
    AUTO_COMMIT = True
    EXPORT_FORMATS = ("csv",)
    URL_PREFIX = "/admin"
    LOGLEVEL = logging.WARNING

    def __init__(self, app: Optional[flask.app.Flask] = None, *args, **kwargs) -> None:
        """
        Constructor
        """
        self.app = app
        self.resources: Dict[str, ResourceConfig] = {}
        self.authorization: Any = AuthorizationAdapter
        self.current_user: Callable[[], Any] = lambda: None
        self.store: Optional[SQLAlchemyStore] = None
        self.url_prefix = self.URL_PREFIX
        if app is not None:
            self.init_app(app, *args, **kwargs)

    def init_app(
        self,
        app: flask.app.Flask,
        db: Any = None,
        url_prefix: Optional[str] = None,
        authorization: Any = None,
        current_user: Optional[Callable[[], Any]] = None,
    ) -> None:
        """
        Application initialization
        """
        if not isinstance(app, Flask):  # pragma: no cover
            raise TypeError("'app' should be Flask.")

        if db is None:
            db = app.extensions["sqlalchemy"]

        self.app = app
        app.request_class = AdminRequest
        app.extensions["adminkit"] = self

        if app.config.get("DEBUG", False):
            log.setLevel(logging.DEBUG)

        with app.app_context():
            auto_commit = get_config("AUTO_COMMIT")
            self.url_prefix = url_prefix if url_prefix is not None else get_config("URL_PREFIX")
        self.store = SQLAlchemyStore(db.session, auto_commit=auto_commit not in (False, "0", "false", "False"))
        if authorization is not None:
            self.authorization = authorization
        if current_user is not None:
            self.current_user = current_user

    def register(self, model, name: Optional[str] = None, **options) -> ResourceConfig:
        """
        Register `model` and expose its admin views
        :param model: sqla model class
        :param name: url name, the table name if not given
        :param options: ResourceConfig options
        :return: the (frozen) resource configuration
        """
        if self.app is None:
            raise RuntimeError("AdminKit.register called before init_app")

        with self.app.app_context():
            options.setdefault("per_page", get_int_config("DEFAULT_PER_PAGE", DEFAULT_PER_PAGE))
            options.setdefault("max_per_page", get_int_config("MAX_PER_PAGE", MAX_PER_PAGE))
            options.setdefault("export_formats", get_config("EXPORT_FORMATS"))
        if isinstance(options["export_formats"], str):
            options["export_formats"] = [fmt.strip() for fmt in options["export_formats"].split(",") if fmt.strip()]

        config = ResourceConfig.build(model, name=name, **options)
        if config.name in self.resources:
            raise ValueError(f'A resource named "{config.name}" has already been registered')
        self.resources[config.name] = config

        expose_resource(self, config)
        log.info(f"Registered {model.__name__} as {self.url_prefix}/{config.name}")
        return config

    def authorization_for(self, user: Any) -> AuthorizationAdapter:
        """
        :return: authorization adapter bound to `user`
        """
        authorization = self.authorization
        if isinstance(authorization, type):
            return authorization(user)
        if hasattr(authorization, "for_user"):
            return authorization.for_user(user)
        return authorization

    def data_access(self, config: ResourceConfig, context: RequestContext):
        """
        :return: a new DataAccess for one request
        """
        return DataAccess(config, context, self.store, self.authorization_for(context.user))

    @staticmethod
    def init_logging(loglevel: int = logging.WARNING) -> logging.Logger:
        """
        Specify the log format used in the webserver logs
        """
        log = logging.getLogger("adminkit")
        if log.level == logging.NOTSET:
            handler = logging.StreamHandler(sys.stderr)
            formatter = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s")
            handler.setFormatter(formatter)
            log.setLevel(loglevel)
            log.addHandler(handler)
        return log


#
# logging initialization
#
try:
    DEBUG = os.getenv("DEBUG", logging.WARNING)
    LOGLEVEL = int(DEBUG)
except ValueError:  # pragma: no cover
    print(f'Invalid LogLevel in DEBUG Environment Variable! "{DEBUG}"')
    LOGLEVEL = logging.INFO

log = AdminKit.init_logging(LOGLEVEL)
