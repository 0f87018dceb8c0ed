# insured_templates/pricing/params.py
"""
Custom parameter schema.

A template declares an ordered list of named, typed slots; a policy creator
may override any of them within the declared bounds. Resolution is total and
deterministic: the same schema and input always give the same mapping or the
same InvalidParameterValue.
"""
from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Iterable
from typing import Any, Dict, Sequence, Tuple, Union

from insured_templates.common.validation import (
    I128_MAX,
    I128_MIN,
    validate_collection_length,
    validate_in_bounds,
    validate_min_max,
    validate_string_length,
)
from insured_templates.errors import InvalidParameterValue

MAX_CUSTOM_PARAMS = 32
MAX_PARAM_NAME_LEN = 32
MAX_CHOICE_OPTIONS = 32
MAX_CHOICE_LABEL_LEN = 64


# =========================
# Definitions
# =========================

@dataclass(frozen=True)
class IntegerParam:
    name: str
    min_value: int
    max_value: int
    default: int


@dataclass(frozen=True)
class DecimalParam:
    """Fixed-point value held as a scaled integer (e.g. basis points)."""
    name: str
    min_value: int
    max_value: int
    default: int


@dataclass(frozen=True)
class BooleanParam:
    name: str
    default: bool


@dataclass(frozen=True)
class ChoiceParam:
    name: str
    options: Tuple[str, ...]
    default_index: int = 0


CustomParam = Union[IntegerParam, DecimalParam, BooleanParam, ChoiceParam]
PARAM_TYPES = (IntegerParam, DecimalParam, BooleanParam, ChoiceParam)


# =========================
# Values supplied at policy creation
# =========================

@dataclass(frozen=True)
class IntegerValue:
    name: str
    value: int


@dataclass(frozen=True)
class DecimalValue:
    name: str
    value: int


@dataclass(frozen=True)
class BooleanValue:
    name: str
    value: bool


@dataclass(frozen=True)
class ChoiceValue:
    name: str
    index: int


ParamValue = Union[IntegerValue, DecimalValue, BooleanValue, ChoiceValue]
VALUE_TYPES = (IntegerValue, DecimalValue, BooleanValue, ChoiceValue)


def _check_numeric_param(param: Union[IntegerParam, DecimalParam]) -> None:
    lo = validate_in_bounds(param.min_value, I128_MIN, I128_MAX, f"{param.name}.min", InvalidParameterValue)
    hi = validate_in_bounds(param.max_value, I128_MIN, I128_MAX, f"{param.name}.max", InvalidParameterValue)
    validate_min_max(lo, hi, param.name, InvalidParameterValue)
    validate_in_bounds(param.default, lo, hi, f"{param.name}.default", InvalidParameterValue)


def _check_choice_param(param: ChoiceParam) -> None:
    options = param.options
    if not isinstance(options, (tuple, list)):
        raise InvalidParameterValue(f"{param.name}.options must be a sequence of labels")
    validate_collection_length(options, 2, MAX_CHOICE_OPTIONS, f"{param.name}.options", InvalidParameterValue)
    for label in options:
        validate_string_length(label, 1, MAX_CHOICE_LABEL_LEN, f"{param.name} option", InvalidParameterValue)
    if len(set(options)) != len(options):
        raise InvalidParameterValue(f"{param.name}.options contains duplicate labels")
    validate_in_bounds(param.default_index, 0, len(options) - 1, f"{param.name}.default_index", InvalidParameterValue)


def validate_schema(params: Iterable[CustomParam]) -> Tuple[CustomParam, ...]:
    """Check a template's parameter definitions and freeze them into a tuple."""
    if params is None or not isinstance(params, Iterable):
        raise InvalidParameterValue("custom_params must be a sequence of parameter definitions")
    schema = tuple(params)
    validate_collection_length(schema, 0, MAX_CUSTOM_PARAMS, "custom_params", InvalidParameterValue)

    seen = set()
    for param in schema:
        if not isinstance(param, PARAM_TYPES):
            raise InvalidParameterValue(f"unsupported custom parameter {type(param).__name__}")
        validate_string_length(param.name, 1, MAX_PARAM_NAME_LEN, "parameter name", InvalidParameterValue)
        if param.name in seen:
            raise InvalidParameterValue(f"duplicate parameter name {param.name!r}")
        seen.add(param.name)

        if isinstance(param, (IntegerParam, DecimalParam)):
            _check_numeric_param(param)
        elif isinstance(param, BooleanParam):
            if not isinstance(param.default, bool):
                raise InvalidParameterValue(f"{param.name}.default must be a boolean")
        elif isinstance(param, ChoiceParam):
            _check_choice_param(param)

    # Choice options are stored as a tuple so the frozen template stays hashable
    return tuple(
        ChoiceParam(p.name, tuple(p.options), p.default_index) if isinstance(p, ChoiceParam) else p
        for p in schema
    )


def default_value(param: CustomParam) -> ParamValue:
    if isinstance(param, IntegerParam):
        return IntegerValue(param.name, param.default)
    if isinstance(param, DecimalParam):
        return DecimalValue(param.name, param.default)
    if isinstance(param, BooleanParam):
        return BooleanValue(param.name, param.default)
    if isinstance(param, ChoiceParam):
        return ChoiceValue(param.name, param.default_index)
    raise InvalidParameterValue(f"unsupported custom parameter {type(param).__name__}")


def _check_value(param: CustomParam, value: ParamValue) -> ParamValue:
    if isinstance(param, IntegerParam) and isinstance(value, IntegerValue):
        validate_in_bounds(value.value, param.min_value, param.max_value, param.name, InvalidParameterValue)
    elif isinstance(param, DecimalParam) and isinstance(value, DecimalValue):
        validate_in_bounds(value.value, param.min_value, param.max_value, param.name, InvalidParameterValue)
    elif isinstance(param, BooleanParam) and isinstance(value, BooleanValue):
        if not isinstance(value.value, bool):
            raise InvalidParameterValue(f"{param.name} expects a boolean")
    elif isinstance(param, ChoiceParam) and isinstance(value, ChoiceValue):
        validate_in_bounds(value.index, 0, len(param.options) - 1, f"{param.name} choice", InvalidParameterValue)
    else:
        raise InvalidParameterValue(
            f"{param.name} expects {type(param).__name__}, got {type(value).__name__}"
        )
    return value


def resolve_custom_values(
    schema: Sequence[CustomParam],
    values: Iterable[ParamValue],
) -> Dict[str, ParamValue]:
    """
    Resolve caller-supplied values against a template schema.

    Every supplied name must exist in the schema and appear at most once;
    names left out take the schema default. The result follows schema order.
    """
    if values is None or not isinstance(values, Iterable):
        raise InvalidParameterValue("custom_values must be a sequence of parameter values")

    supplied: Dict[str, ParamValue] = {}
    for value in values:
        if not isinstance(value, VALUE_TYPES):
            raise InvalidParameterValue(f"unsupported custom value {type(value).__name__}")
        if not isinstance(value.name, str):
            raise InvalidParameterValue("parameter name must be a string")
        if value.name in supplied:
            raise InvalidParameterValue(f"parameter {value.name!r} supplied more than once")
        supplied[value.name] = value

    known = {param.name for param in schema}
    unknown = [name for name in supplied if name not in known]
    if unknown:
        raise InvalidParameterValue(f"unknown parameter(s): {', '.join(sorted(unknown))}")

    resolved: Dict[str, ParamValue] = {}
    for param in schema:
        value = supplied.get(param.name)
        resolved[param.name] = default_value(param) if value is None else _check_value(param, value)
    return resolved


def choice_label(param: ChoiceParam, value: ChoiceValue) -> str:
    return param.options[value.index]


def describe_value(value: ParamValue) -> Any:
    """Plain payload of a resolved value (index for choices)."""
    if isinstance(value, ChoiceValue):
        return value.index
    return value.value
