# api/models/common.py
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire; both accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MemberSummary(CamelModel):
    id: int
    name: str
    company: Optional[str] = None
    location: Optional[str] = None
    rating: float = 0.0
    is_verified: bool = False


def dump(model_cls: type[CamelModel], obj: Any) -> dict[str, Any]:
    return model_cls.model_validate(obj).model_dump(by_alias=True, mode="json")
