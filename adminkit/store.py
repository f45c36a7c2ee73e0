"""
Persistence of admin resources with a SQLAlchemy session

Only `save` and `destroy` write to the database. A failed validation is not an error:
`save` returns a falsy SaveResult holding the messages and the record keeps its
(unsaved) attribute values so the form can be shown again.
"""

from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence
from sqlalchemy import inspect as sqla_inspect
from sqlalchemy.exc import SQLAlchemyError
import adminkit
from .attr_parse import parse_attr
from .decorators import undecorate
from .errors import GenericError, ValidationError

DEFAULT_ROLE = "default"

Validator = Callable[[Any], Any]


class SaveResult:
    """
    Outcome of a save: truthy when the record was persisted
    """

    def __init__(self, saved: bool, errors: Sequence[str] = ()) -> None:
        self.saved = saved
        self.errors = list(errors)

    def __bool__(self) -> bool:
        return self.saved

    def __repr__(self) -> str:
        return f"<SaveResult saved={self.saved} errors={self.errors}>"


def _error_messages(result: Any) -> List[str]:
    """
    Normalize a validation result: None, a message, a list of messages or a {field: message(s)} dict
    """
    if not result:
        return []
    if isinstance(result, str):
        return [result]
    if isinstance(result, Mapping):
        messages = []
        for field, msgs in result.items():
            if isinstance(msgs, str):
                msgs = [msgs]
            messages += [f"{field} {msg}" for msg in msgs]
        return messages
    return [str(msg) for msg in result]


def assignable_attributes(model, role: Optional[str] = None, permitted: Optional[Mapping[str, Iterable[str]]] = None) -> frozenset:
    """
    :param model: sqla model class
    :param role: role qualifier, DEFAULT_ROLE if None
    :param permitted: role -> attribute names that may be mass-assigned
    :return: names of the attributes that may be assigned for `role`
    """
    mapper = sqla_inspect(model)
    if permitted:
        return frozenset(permitted.get(role or DEFAULT_ROLE, ()))
    # without configuration: all columns except the primary keys (no client generated ids)
    pk_columns = set(mapper.primary_key)
    return frozenset(attr.key for attr in mapper.column_attrs if not pk_columns.intersection(attr.columns))


class SQLAlchemyStore:
    """
    :param session: sqla (scoped) session, eg. flask_sqlalchemy `db.session`
    :param auto_commit: commit after every write, flush only if False
    """

    def __init__(self, session, auto_commit: bool = True) -> None:
        self.session = session
        self.auto_commit = auto_commit

    def query(self, model):
        return self.session.query(model)

    def assign_attributes(
        self, record, values: Optional[Mapping[str, Any]], role: Optional[str] = None, permitted=None, errors: Optional[List[str]] = None
    ) -> List[str]:
        """
        Mass-assign `values` to `record`, attributes not assignable for `role` are skipped
        :param errors: receives the messages of values that can't be converted to the column type,
                       the attribute is left unchanged. If None, a ValidationError is raised instead
        :return: names of the attributes that were assigned
        """
        record = undecorate(record)
        if not values:
            return []
        model = type(record)
        allowed = assignable_attributes(model, role, permitted)
        column_attrs = sqla_inspect(model).column_attrs
        # explicit nulls only get the column default on new records
        use_default = not sqla_inspect(record).has_identity
        assigned = []
        for attr_name, attr_val in values.items():
            if attr_name not in allowed or attr_name not in column_attrs.keys():
                adminkit.log.warning(f"Can't mass-assign {model.__name__}.{attr_name} (role {role or DEFAULT_ROLE})")
                continue
            column = column_attrs[attr_name].columns[0]
            try:
                parsed = parse_attr(column, attr_val, use_default)
            except ValidationError:
                if errors is None:
                    raise
                errors.append(f'{attr_name} has an invalid value "{attr_val}"')
                continue
            setattr(record, attr_name, parsed)
            assigned.append(attr_name)
        return assigned

    def validate(self, record, validators: Iterable[Validator] = ()) -> List[str]:
        errors = []
        validate = getattr(record, "validate", None)
        if callable(validate):
            errors += _error_messages(validate())
        for validator in validators:
            errors += _error_messages(validator(record))
        return errors

    def _write(self):
        try:
            if self.auto_commit:
                self.session.commit()
            else:
                self.session.flush()
        except SQLAlchemyError as exc:
            # Exception may arise when a db constraint has been violated (e.g. duplicate key)
            self.session.rollback()
            adminkit.log.warning(str(exc))
            raise GenericError(str(exc))

    def save(self, record, validators: Iterable[Validator] = ()) -> SaveResult:
        record = undecorate(record)
        errors = self.validate(record, validators)
        if errors:
            adminkit.log.info(f"Validation failed for {record}: {errors}")
            return SaveResult(False, errors)
        if record not in self.session:
            self.session.add(record)
        self._write()
        return SaveResult(True)

    def destroy(self, record) -> bool:
        record = undecorate(record)
        self.session.delete(record)
        self._write()
        return True
