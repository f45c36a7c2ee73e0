#  This file contains the flask views of the registered admin resources:
#  - index, new, create on /<prefix>/<name>
#  - show, edit, update, destroy on /<prefix>/<name>/<id>
#  - csv export on /<prefix>/<name>.csv
#
#  Every request creates its own DataAccess pipeline (see AdminKit.data_access),
#  records are serialized as {column name: value} dicts.
#
# pylint: disable=redefined-builtin,invalid-name
#
import csv
import io
import logging
from functools import wraps
from http import HTTPStatus
from typing import Any, Callable, Dict
from werkzeug.exceptions import HTTPException
from flask import Response, jsonify, make_response, request
from flask.views import MethodView
from sqlalchemy import inspect as sqla_inspect
import adminkit
from .decorators import undecorate
from .errors import AdminError
from .request import CSV, RequestContext
from .resource_config import ResourceConfig


def record_to_dict(record) -> Dict[str, Any]:
    """
    :param record: (decorated) record
    :return: column values, read through the decorator so it can override them
    """
    model = type(undecorate(record))
    return {attr.key: getattr(record, attr.key) for attr in sqla_inspect(model).column_attrs}


def collection_to_csv(config: ResourceConfig, collection) -> str:
    column_names = [attr.key for attr in sqla_inspect(config.model).column_attrs]
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(column_names)
    for record in collection:
        writer.writerow([getattr(record, name) for name in column_names])
    return output.getvalue()


def http_method_decorator(fun: Callable) -> Callable:
    """Decorator for the admin view methods (get, post, patch, put, delete)
    - convert AdminErrors to a json error document with the error's status code
    - rollback the database session when an error occurs
    """

    @wraps(fun)
    def method_wrapper(self, *args, **kwargs):
        admin_exception = None
        status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
        message = ""
        try:
            return fun(self, *args, **kwargs)

        except AdminError as exc:
            admin_exception = exc

        except HTTPException as exc:
            status_code = exc.code
            message = exc.description
            adminkit.log.error(message)

        except Exception as exc:
            adminkit.log.exception(exc)
            message = "Logging Disabled" if adminkit.log.getEffectiveLevel() > logging.DEBUG else str(exc)

        status_code = getattr(admin_exception, "status_code", status_code)
        title = getattr(admin_exception, "message", message)
        detail = getattr(admin_exception, "detail", title)

        self.admin.store.session.rollback()
        errors = dict(title=title, detail=detail, code=str(status_code))
        return make_response(jsonify(errors=[errors]), status_code)

    return method_wrapper


class ResourceView(MethodView):
    """
    Admin views of a resource, a subclass is created for every registered resource
    with the `config` and `admin` class attributes set
    """

    config: ResourceConfig = None
    admin = None

    def data_access(self, action: str, **view_args):
        context = RequestContext.from_request(request, action, user=self.admin.current_user(), **view_args)
        return self.admin.data_access(self.config, context)

    @http_method_decorator
    def get(self, id=None, action=None, format=None, **kwargs):
        """
        index, show, new and edit
        """
        if action == "new":
            access = self.data_access("new", **kwargs)
            return jsonify(data=record_to_dict(access.build_resource()))

        if id is not None:
            access = self.data_access(action or "show", id=id, **kwargs)
            return jsonify(data=record_to_dict(access.resource()))

        access = self.data_access("index", format=format, **kwargs)
        collection = access.collection()
        if access.is_export():
            if access.context.format != CSV:
                return make_response(jsonify(data=[record_to_dict(record) for record in collection]), HTTPStatus.OK)
            response = Response(collection_to_csv(self.config, collection), mimetype="text/csv")
            response.headers["Content-Disposition"] = f"attachment; filename={self.config.name}.csv"
            return response
        return jsonify(data=[record_to_dict(record) for record in collection], meta=self.index_meta(access, collection))

    def index_meta(self, access, collection) -> Dict[str, Any]:
        meta = {
            "page": collection.page,
            "per_page": collection.per_page,
            "total": collection.total,
            "pages": collection.pages,
            "scope": access.current_scope.id if access.current_scope else None,
            "search": access.search.conditions if access.search else {},
        }
        before_scope = access.collection_before_scope
        meta["scopes"] = {scope.id: scope.apply(before_scope, self.config.model).order_by(None).count() for scope in self.config.scopes}
        return meta

    @http_method_decorator
    def post(self, **kwargs):
        """
        create
        """
        access = self.data_access("create", **kwargs)
        resource = access.build_resource()
        result = access.create_resource(resource)
        if result is None:
            return make_response(jsonify(errors=["create halted"]), HTTPStatus.CONFLICT)
        if not result:
            return make_response(jsonify(errors=list(access.errors)), HTTPStatus.UNPROCESSABLE_ENTITY)
        return make_response(jsonify(data=record_to_dict(resource)), HTTPStatus.CREATED)

    @http_method_decorator
    def patch(self, id=None, **kwargs):
        """
        update
        """
        access = self.data_access("update", id=id, **kwargs)
        resource = access.resource()
        result = access.update_resource(resource, access.resource_params())
        if not result:
            # discard the unsaved values
            self.admin.store.session.rollback()
        if result is None:
            return make_response(jsonify(errors=["update halted"]), HTTPStatus.CONFLICT)
        if not result:
            return make_response(jsonify(errors=list(access.errors)), HTTPStatus.UNPROCESSABLE_ENTITY)
        return make_response(jsonify(data=record_to_dict(resource)), HTTPStatus.OK)

    put = patch

    @http_method_decorator
    def delete(self, id=None, **kwargs):
        """
        destroy
        """
        access = self.data_access("destroy", id=id, **kwargs)
        if not access.destroy_resource(access.resource()):
            return make_response(jsonify(errors=["destroy halted"]), HTTPStatus.CONFLICT)
        return make_response("", HTTPStatus.NO_CONTENT)


def resource_urls(admin, config: ResourceConfig) -> list:
    """
    :return: url prefixes of the resource, nested resources are exposed below their parent
    """
    prefix = admin.url_prefix.rstrip("/")
    urls = []
    belongs_to = config.belongs_to
    if belongs_to is not None:
        parent_name = getattr(belongs_to.parent_model, "__tablename__", belongs_to.parent_model.__name__.lower())
        urls.append(f"{prefix}/{parent_name}/<{belongs_to.param}>/{config.name}")
    if belongs_to is None or belongs_to.optional:
        urls.append(f"{prefix}/{config.name}")
    return urls


def expose_resource(admin, config: ResourceConfig) -> None:
    """
    Create the ResourceView subclass of `config` and add its url rules to the app
    """
    view_class = type(f"{config.model.__name__}AdminView", (ResourceView,), {"config": config, "admin": admin})
    view = view_class.as_view(f"adminkit_{config.name}")
    app = admin.app

    for index, url in enumerate(resource_urls(admin, config)):
        endpoint = f"adminkit.{config.name}" + (f".{index}" if index else "")
        adminkit.log.info(f"Exposing {config.name} on {url}, endpoint: {endpoint}")
        app.add_url_rule(url, endpoint=endpoint, view_func=view, methods=["GET", "POST"])
        for export_format in config.export_formats:
            app.add_url_rule(f"{url}.{export_format}", endpoint=f"{endpoint}.{export_format}", view_func=view, methods=["GET"], defaults={"format": export_format})
        app.add_url_rule(f"{url}/new", endpoint=f"{endpoint}.new", view_func=view, methods=["GET"], defaults={"action": "new"})
        app.add_url_rule(f"{url}/<id>", endpoint=f"{endpoint}.instance", view_func=view, methods=["GET", "PATCH", "PUT", "DELETE"])
        app.add_url_rule(f"{url}/<id>/edit", endpoint=f"{endpoint}.edit", view_func=view, methods=["GET"], defaults={"action": "edit"})
