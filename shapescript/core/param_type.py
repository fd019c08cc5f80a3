"""
Parameter schema extraction and value coercion.

extract_parameters() turns the script's ``uiParams`` declaration list into a
typed schema. coerce_params() decodes JSON-encoded overrides against that
schema, updates the parameters in place and returns the values the script
sees in its ``args`` container.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from shapescript.engines.errors import UnsupportedParameterTypeError
from shapescript.geometry import Vector3, to_vector3
from shapescript.models import (
    MAIN_HANDLER,
    DoubleParameter,
    LocationParameter,
    Parameter,
    ParameterTypeEnum,
    StringParameter,
    URIListParameter,
    URIParameter,
)

_log = logging.getLogger(__name__)

_LIST_SUFFIX = "[]"


class ParamTypeError(ValueError):
    """Raised when an override value cannot be decoded for its parameter."""

    pass


class ParameterValue:
    """Script-facing view of a scalar parameter: ``args["r"].value`` or ``float(args["r"])``."""

    __slots__ = ("_param",)

    def __init__(self, param: Parameter) -> None:
        self._param = param

    @property
    def name(self) -> str:
        return self._param.name

    @property
    def value(self) -> Any:
        return self._param.value

    def __float__(self) -> float:
        return float(self._param.value)

    def __str__(self) -> str:
        return str(self._param.value)

    def __repr__(self) -> str:
        return f"ParameterValue({self._param.name}={self._param.value!r})"


# ---------------------------------------------------------------------------
# Schema extraction
# ---------------------------------------------------------------------------


def _number(value: Any, field: str, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise UnsupportedParameterTypeError(
            f"Parameter '{name}' {field} must be a number, got: {value!r}"
        )
    return float(value)


def _vector(value: Any, field: str, name: str) -> Vector3:
    try:
        return to_vector3(value)
    except ValueError as e:
        raise UnsupportedParameterTypeError(f"Parameter '{name}' {field}: {e}") from e


def _parse_type(raw: Any, name: str) -> ParameterTypeEnum:
    if not isinstance(raw, str):
        raise UnsupportedParameterTypeError(f"Parameter '{name}' has no type")
    type_st = raw.strip().upper()
    if type_st.endswith(_LIST_SUFFIX):
        type_st = type_st[: -len(_LIST_SUFFIX)] + "_LIST"
    try:
        return ParameterTypeEnum(type_st)
    except ValueError as e:
        raise UnsupportedParameterTypeError(
            f"Unhandled parameter type: {raw} (parameter '{name}')"
        ) from e


def _build_parameter(entry: Mapping[str, Any]) -> Parameter:
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise UnsupportedParameterTypeError(f"Parameter definition has no name: {dict(entry)!r}")
    desc = entry.get("desc")
    ptype = _parse_type(entry.get("type"), name)
    default = entry.get("default")
    on_change = entry.get("onChange") or MAIN_HANDLER

    if ptype is ParameterTypeEnum.DOUBLE:
        param: Parameter = DoubleParameter(name=name, description=desc)
        for key, field in (
            ("rangeMin", "range_min"),
            ("rangeMax", "range_max"),
            ("step", "step"),
            ("default", "value"),
        ):
            val = entry.get(key)
            if val is not None:
                setattr(param, field, _number(val, key, name))
    elif ptype is ParameterTypeEnum.STRING:
        param = StringParameter(name=name, description=desc, value=default)
    elif ptype is ParameterTypeEnum.URI:
        param = URIParameter(name=name, description=desc, value=default)
    elif ptype is ParameterTypeEnum.URI_LIST:
        items = default or []
        if not isinstance(items, (list, tuple)):
            raise UnsupportedParameterTypeError(f"Parameter '{name}' default must be a list of URIs")
        param = URIListParameter(
            name=name,
            description=desc,
            values=[URIParameter(name=name, description=desc, value=u) for u in items],
        )
    elif ptype is ParameterTypeEnum.LOCATION:
        param = LocationParameter(name=name, description=desc)
        if default is not None:
            if not isinstance(default, Mapping):
                raise UnsupportedParameterTypeError(
                    f"Parameter '{name}' default must be a mapping of point/normal"
                )
            if default.get("point") is not None:
                param.point = _vector(default["point"], "point", name)
            if default.get("normal") is not None:
                param.normal = _vector(default["normal"], "normal", name)
    else:
        raise UnsupportedParameterTypeError(f"Unhandled parameter type: {ptype.value}")

    param.on_change = on_change
    return param


def extract_parameters(ui_params: Any) -> dict[str, Parameter]:
    """
    Build the parameter schema from the script's declaration list.

    - ui_params: ordered list of {name, desc, type, default, rangeMin?, rangeMax?, step?, onChange?}
    - None or a non-list value gives an empty schema.

    Returns name -> Parameter in declaration order.
    Raises UnsupportedParameterTypeError on the first bad declaration.
    """
    defs: dict[str, Parameter] = {}
    if ui_params is None:
        return defs
    if not isinstance(ui_params, (list, tuple)):
        _log.debug("Parameter declaration is not a list (%s), ignoring", type(ui_params).__name__)
        return defs

    for entry in ui_params:
        if not isinstance(entry, Mapping):
            raise UnsupportedParameterTypeError(
                f"Parameter definition must be a mapping, got: {type(entry).__name__}"
            )
        try:
            param = _build_parameter(entry)
        except ValidationError as e:
            raise UnsupportedParameterTypeError(
                f"Invalid parameter definition {entry.get('name')!r}: {e}"
            ) from e
        _log.debug(
            "Creating parameter name=%s type=%s onChange=%s",
            param.name,
            param.type.value,
            param.on_change,
        )
        defs[param.name] = param
    return defs


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def _coerce_double(value: Any, param: DoubleParameter) -> float:
    if value is None:
        raise ParamTypeError("Value is empty")
    if isinstance(value, bool):
        raise ParamTypeError("Boolean not allowed for number")
    if isinstance(value, (int, float)):
        x = float(value)
    else:
        s = str(value).strip()
        try:
            x = float(s)
        except ValueError as e:
            raise ParamTypeError(f"Invalid number: {s!r}") from e
    if not param.in_range(x):
        raise ParamTypeError(
            f"Value {x} out of range [{param.range_min}, {param.range_max}]"
        )
    return x


def _coerce_string(value: Any) -> str:
    if value is None:
        raise ParamTypeError("Value is empty")
    if isinstance(value, (dict, list)):
        raise ParamTypeError(f"Expected string, got: {type(value).__name__}")
    return value if isinstance(value, str) else str(value)


def _coerce_uri_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        raise ParamTypeError(f"Expected array of URIs, got: {type(value).__name__}")
    return [_coerce_string(v) for v in value]


def _coerce_location(value: Any) -> tuple[Vector3 | None, Vector3 | None]:
    if not isinstance(value, dict):
        raise ParamTypeError(f"Expected object with point/normal, got: {type(value).__name__}")
    out: list[Vector3 | None] = []
    for key in ("point", "normal"):
        v = value.get(key)
        if v is None:
            out.append(None)
            continue
        try:
            out.append(to_vector3(v))
        except ValueError as e:
            raise ParamTypeError(f"Invalid {key}: {e}") from e
    return out[0], out[1]


def _apply(param: Parameter, value: Any) -> Any:
    """Update param from a decoded JSON value; return the script-visible value."""
    if isinstance(param, DoubleParameter):
        param.value = _coerce_double(value, param)
        return ParameterValue(param)
    if isinstance(param, (StringParameter, URIParameter)):
        param.value = _coerce_string(value)
        return ParameterValue(param)
    if isinstance(param, URIListParameter):
        uris = _coerce_uri_list(value)
        param.values = [
            URIParameter(name=param.name, description=param.description, value=u) for u in uris
        ]
        return ParameterValue(param)
    if isinstance(param, LocationParameter):
        point, normal = _coerce_location(value)
        # Sub-fields missing from the update keep their previous value.
        if point is not None:
            param.point = point
        if normal is not None:
            param.normal = normal
        return param
    raise ParamTypeError(f"Unhandled parameter type: {param.type}")


def coerce_params(
    params: Mapping[str, Parameter],
    named_params: Mapping[str, str],
) -> dict[str, Any]:
    """
    Decode JSON-encoded overrides into their parameters.

    - params: the current schema; matched parameters are updated in place.
    - named_params: name -> JSON-encoded value string.

    Returns name -> script-visible value for every entry that decoded.
    Unknown names and undecodable values are logged and skipped.
    """
    wrapped: dict[str, Any] = {}
    for key, raw in named_params.items():
        param = params.get(key)
        if param is None:
            _log.warning("Unknown param: %s (known: %s)", key, ", ".join(params) or "-")
            continue
        try:
            value = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
            wrapped[key] = _apply(param, value)
        except Exception as e:
            # Any decode fault (including RecursionError from deep JSON) skips this entry only
            _log.warning("Error parsing param %s=%.200r: %s", key, raw, e)
    return wrapped
