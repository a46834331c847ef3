"""
GIMS Common Schemas
Shared Pydantic models for common API structures
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Iterable


class ApiModel(BaseModel):
    """
    Base for request payloads

    Accepts both snake_case and camelCase keys, the frontend sends either
    depending on the screen.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def missing(self, names: Iterable[str]) -> List[str]:
        """Names of fields that are unset or blank"""
        result = []
        for name in names:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                result.append(name)
        return result


def total_pages(total: int, page_size: int) -> int:
    return (total + page_size - 1) // page_size if page_size else 0


def to_dict(instance, exclude: Iterable[str] = ()) -> Dict[str, Any]:
    """Column values of an ORM instance keyed by column name"""
    from sqlalchemy import inspect

    return {
        column.key: getattr(instance, column.key)
        for column in inspect(instance).mapper.column_attrs
        if column.key not in exclude
    }
