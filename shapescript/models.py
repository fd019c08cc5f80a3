"""
Parameter models: the typed schema a script declares through ``uiParams``.

One pydantic model per parameter kind, discriminated on ``type``.
"""

import math
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from shapescript.geometry import Vector3

MAIN_HANDLER = "main"


class ParameterTypeEnum(str, Enum):
    DOUBLE = "DOUBLE"
    STRING = "STRING"
    URI = "URI"
    URI_LIST = "URI_LIST"
    LOCATION = "LOCATION"


class ParameterBase(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    name: str
    description: str | None = None
    on_change: str = MAIN_HANDLER


class DoubleParameter(ParameterBase):
    type: Literal[ParameterTypeEnum.DOUBLE] = ParameterTypeEnum.DOUBLE
    value: float = 0.0
    range_min: float = -math.inf
    range_max: float = math.inf
    step: float = 1.0

    def in_range(self, value: float) -> bool:
        return self.range_min <= value <= self.range_max

    @field_serializer("range_min", "range_max", when_used="json")
    def serialize_range(self, bound: float) -> float | None:
        # JSON has no infinity
        return bound if math.isfinite(bound) else None


class StringParameter(ParameterBase):
    type: Literal[ParameterTypeEnum.STRING] = ParameterTypeEnum.STRING
    value: str | None = None


class URIParameter(ParameterBase):
    type: Literal[ParameterTypeEnum.URI] = ParameterTypeEnum.URI
    value: str | None = None


class URIListParameter(ParameterBase):
    type: Literal[ParameterTypeEnum.URI_LIST] = ParameterTypeEnum.URI_LIST
    values: list[URIParameter] = Field(default_factory=list)

    @property
    def value(self) -> list[str | None]:
        return [u.value for u in self.values]


class LocationParameter(ParameterBase):
    type: Literal[ParameterTypeEnum.LOCATION] = ParameterTypeEnum.LOCATION
    point: Vector3 | None = None
    normal: Vector3 | None = None


Parameter = Annotated[
    Union[
        DoubleParameter,
        StringParameter,
        URIParameter,
        URIListParameter,
        LocationParameter,
    ],
    Field(discriminator="type"),
]
