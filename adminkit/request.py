"""
Request parsing

AdminRequest parses the bracketed query string arguments used by the admin views into
nested dicts:

    q[title_cont]=flask&q[author][name_eq]=jane&q[id_in][]=1&q[id_in][]=2

becomes

    {"q": {"title_cont": "flask", "author": {"name_eq": "jane"}, "id_in": ["1", "2"]}}

RequestContext is the (immutable) view of a request that is handed to the DataAccess pipeline,
it can also be created without Flask, eg. in tests or scripts.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
from flask import Request
import adminkit

JSON = "json"
CSV = "csv"
MIMETYPE_FORMATS = {"application/json": JSON, "text/csv": CSV}

_KEY_RE = re.compile(r"\[([^\[\]]*)\]")


def split_key(arg: str) -> list:
    """
    :param arg: eg. "q[author][name_eq]"
    :return: ["q", "author", "name_eq"], a trailing "" indicates a list: "q[id_in][]"
    """
    bracket = arg.find("[")
    if bracket <= 0 or not arg.endswith("]"):
        return [arg]
    head, rest = arg[:bracket], arg[bracket:]
    parts = _KEY_RE.findall(rest)
    if "".join(f"[{part}]" for part in parts) != rest:
        # malformed, eg. "q[a]b]"
        return [arg]
    return [head] + parts


def parse_nested_args(args) -> Dict[str, Any]:
    """
    :param args: werkzeug MultiDict (or a list of (key, value) tuples)
    :return: nested dict
    """
    items = args.items(multi=True) if hasattr(args, "items") and hasattr(args, "getlist") else args
    result: Dict[str, Any] = {}
    for arg, val in items:
        keys = split_key(arg)
        is_list = len(keys) > 1 and keys[-1] == ""
        if is_list:
            keys = keys[:-1]
        node = result
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = node[key] = {}
            node = child
        leaf = keys[-1]
        if is_list:
            current = node.get(leaf)
            if not isinstance(current, list):
                current = node[leaf] = []
            current.append(val)
        else:
            node[leaf] = val
    return result


class AdminRequest(Request):
    """
    Flask request class, installed by AdminKit.init_app
    """

    @property
    def nested_args(self) -> Dict[str, Any]:
        nested_args = getattr(self, "_nested_args", None)
        if nested_args is None:
            nested_args = self._nested_args = parse_nested_args(self.args)
        return nested_args

    @property
    def response_format(self) -> str:
        """
        The requested format: `format=csv`, a ".csv" path suffix or the Accept header
        """
        requested = self.args.get("format")
        if requested:
            return requested.lower()
        if self.path.lower().endswith("." + CSV):
            return CSV
        best = self.accept_mimetypes.best_match(list(MIMETYPE_FORMATS))
        if best and self.accept_mimetypes[best] > self.accept_mimetypes["application/json"]:
            return MIMETYPE_FORMATS[best]
        return JSON

    def get_form_payload(self) -> Dict[str, Any]:
        """
        :return: the submitted attributes, from a json body or form data
        """
        if self.is_json:
            payload = self.get_json(silent=True)
            if not isinstance(payload, dict):
                adminkit.log.warning(f"Invalid JSON payload: {payload!r}")
                return {}
            return payload
        return parse_nested_args(self.form)


@dataclass(frozen=True)
class RequestContext:
    """
    :param action: controller action: index, show, new, create, edit, update, destroy
    :param params: request parameters (query string, route arguments and submitted attributes)
    :param format: response format, "json" or an export format such as "csv"
    :param user: the current principal
    """

    action: str
    params: Mapping[str, Any] = field(default_factory=dict)
    format: str = JSON
    user: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def get(self, param: str, default: Any = None) -> Any:
        return self.params.get(param, default)

    @classmethod
    def from_request(cls, request, action: str, user: Any = None, **view_args) -> "RequestContext":
        """
        :param request: flask request (AdminRequest)
        :param action: controller action
        :param view_args: url rule arguments (eg. "id", "user_id")
        """
        if isinstance(request, AdminRequest):
            params = dict(request.nested_args)
            response_format = request.response_format
        else:
            params = parse_nested_args(request.args)
            response_format = params.get("format", JSON)
        params.update({key: val for key, val in view_args.items() if val is not None})
        if "format" in view_args and view_args["format"]:
            response_format = view_args["format"]
        if action in ("create", "update"):
            params["resource"] = request.get_form_payload() if isinstance(request, AdminRequest) else request.get_json(silent=True) or {}
        return cls(action=action, params=params, format=str(response_format).lower(), user=user)
