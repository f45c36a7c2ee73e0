"""
Authorization adapters

The data access pipeline asks the adapter two things:
- `authorized(action, subject)`: may the current user perform `action` on `subject`
  (a model class for collections, a record for member actions)
- `scope_collection(collection, action)`: narrow a query to the records the user may access
"""

from typing import Any, Callable, Dict, Optional, Tuple
from sqlalchemy.orm import Query
from .decorators import undecorate
import adminkit

READ = "read"
CREATE = "create"
UPDATE = "update"
DESTROY = "destroy"

ACTION_PERMISSIONS = {
    "index": READ,
    "show": READ,
    "new": CREATE,
    "create": CREATE,
    "edit": UPDATE,
    "update": UPDATE,
    "destroy": DESTROY,
}


def action_to_permission(action: Optional[str]) -> Optional[str]:
    """
    :param action: controller action name, eg. "index" or "edit"
    :return: permission name, custom actions map to themselves
    """
    if action is None:
        return None
    return ACTION_PERMISSIONS.get(action, action)


def subject_class(subject: Any) -> type:
    """
    :param subject: model class, record or decorated record
    :return: the model class
    """
    if isinstance(subject, type):
        return subject
    return type(undecorate(subject))


class AuthorizationAdapter:
    """
    Default adapter: everything is allowed and collections are left untouched.
    Subclass and override `authorized` and `scope_collection` to implement a policy
    """

    def __init__(self, user: Any = None) -> None:
        self.user = user

    def authorized(self, action: str, subject: Any = None) -> bool:
        return True

    def scope_collection(self, collection, action: str = READ):
        return collection


class RuleAuthorization(AuthorizationAdapter):
    """
    Adapter configured with per-model rules:

        auth = RuleAuthorization()
        auth.allow(Post, READ)
        auth.allow(Post, UPDATE, lambda user, post: post.author_id == user.id)
        auth.scope(Post, READ, lambda user: Post.published.is_(True))

    Models without a rule for an action are denied.
    The rules are shared, `for_user` returns an adapter bound to the request's user
    """

    def __init__(self, user: Any = None, rules=None, scopes=None) -> None:
        super().__init__(user)
        self._rules: Dict[Tuple[type, str], Callable[[Any, Any], bool]] = {} if rules is None else rules
        self._scopes: Dict[Tuple[type, str], Callable[[Any], Any]] = {} if scopes is None else scopes

    def for_user(self, user: Any) -> "RuleAuthorization":
        return self.__class__(user, rules=self._rules, scopes=self._scopes)

    def allow(self, model: type, action: str, rule: Optional[Callable[[Any, Any], bool]] = None) -> None:
        """
        :param model: model class
        :param action: permission name
        :param rule: callable(user, subject) -> bool, always allowed if not given
        """
        self._rules[(model, action)] = rule if rule is not None else (lambda user, subject: True)

    def scope(self, model: type, action: str, criterion: Callable[[Any], Any]) -> None:
        """
        :param criterion: callable(user) -> sqlalchemy filter expression
        """
        self._scopes[(model, action)] = criterion

    def authorized(self, action: str, subject: Any = None) -> bool:
        model = subject_class(subject)
        rule = self._rules.get((model, action))
        if rule is None:
            adminkit.log.debug(f"No {action} rule for {model.__name__}")
            return False
        if isinstance(subject, type):
            # class level check: a rule exists for the action
            return True
        return bool(rule(self.user, undecorate(subject)))

    def scope_collection(self, collection, action: str = READ):
        if not isinstance(collection, Query):
            return collection
        descriptions = collection.column_descriptions
        model = descriptions[0].get("entity") if descriptions else None
        criterion = self._scopes.get((model, action))
        if criterion is None:
            return collection
        return collection.filter(criterion(self.user))
