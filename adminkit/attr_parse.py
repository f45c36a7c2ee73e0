import datetime
import adminkit
import sqlalchemy
from .errors import ValidationError

FALSE_VALUES = ("0", "false", "f", "no", "off", "")


def parse_attr(column, attr_val, use_default=True):
    """
    Parse the supplied `attr_val` (typically a string from a form or the query string)
    so it can be saved in, or compared to, the SQLAlchemy `column`

    :param column: SQLAlchemy column
    :param attr_val: request value
    :param use_default: replace None by the column default (new records, not updates)
    :return: processed value
    """
    if attr_val is None and use_default and column.default is not None and not callable(column.default.arg):
        return column.default.arg

    if attr_val is None:
        return attr_val

    try:
        python_type = column.type.python_type
    except NotImplementedError as exc:
        # custom column types: the value is passed as-is
        adminkit.log.debug(exc)
        return attr_val

    # skip type coercion on JSON columns, since they could be anything
    if isinstance(column.type, sqlalchemy.types.JSON):
        return attr_val

    if isinstance(attr_val, python_type):
        return attr_val

    try:
        if python_type is bool:
            attr_val = str(attr_val).strip().lower() not in FALSE_VALUES
        elif python_type is datetime.datetime:
            attr_val = datetime.datetime.fromisoformat(str(attr_val))
        elif python_type is datetime.date:
            attr_val = datetime.date.fromisoformat(str(attr_val))
        elif python_type is datetime.time:
            attr_val = datetime.time.fromisoformat(str(attr_val))
        else:
            attr_val = python_type(attr_val)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f'Invalid value "{attr_val}" for {column.name}: {exc}')

    return attr_val
