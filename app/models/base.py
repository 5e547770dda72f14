from pydantic import BaseModel, BeforeValidator, StringConstraints
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated


def _to_str(value):
    # ids arrive as numbers from older clients and as strings from Firestore
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value))
    return value


Identifier = Annotated[str, BeforeValidator(_to_str), StringConstraints(strip_whitespace=True, min_length=1)]
NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys, accepting either form on input."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        use_enum_values = True
