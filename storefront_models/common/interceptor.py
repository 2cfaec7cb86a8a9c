#
# Copyright 2022 European Centre for Medium-Range Weather Forecasts (ECMWF)
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# In applying this licence, ECMWF does not waive the privileges and immunities
# granted to it by virtue of its status as an intergovernmental organisation nor
# does it submit to any jurisdiction.
#

import enum
import functools
import math
import numbers
import operator
import struct
from typing import Any, Callable


class TypeCategory(enum.Enum):
    """Closed set of attribute kinds that can be dirty-tracked"""

    OBJECT = "object"
    BOOL = "bool"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT = "float"
    DOUBLE = "double"

    @classmethod
    def lookup(cls, value):
        """Resolve a member or its string value, None if the category is unknown"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None

    @property
    def default(self):
        if self is TypeCategory.OBJECT:
            return None
        if self is TypeCategory.BOOL:
            return False
        if self in (TypeCategory.FLOAT, TypeCategory.DOUBLE):
            return 0.0
        return 0


def _as_object(value: Any) -> Any:
    return value


def _as_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"Expected a bool, got {type(value).__name__}")
    return value


def _as_integer(bits: int, signed: bool) -> Callable[[Any], int]:
    if signed:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        low, high = 0, (1 << bits) - 1
    kind = "{}int{}".format("" if signed else "u", bits)

    def convert(value):
        if isinstance(value, bool):
            raise TypeError(f"Expected an integer for {kind}, got bool")
        try:
            value = operator.index(value)
        except TypeError:
            raise TypeError(f"Expected an integer for {kind}, got {type(value).__name__}") from None
        if not low <= value <= high:
            raise ValueError(f"{value} is out of range for {kind} [{low}, {high}]")
        return value

    return convert


def _as_double(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise TypeError(f"Expected a real number, got {type(value).__name__}")
    return float(value)


def _as_float(value: Any) -> float:
    value = _as_double(value)
    if math.isnan(value) or math.isinf(value):
        return value
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        raise ValueError(f"{value} is out of range for a single-precision float") from None


VARIANTS = {
    TypeCategory.OBJECT: _as_object,
    TypeCategory.BOOL: _as_bool,
    TypeCategory.INT8: _as_integer(8, signed=True),
    TypeCategory.INT16: _as_integer(16, signed=True),
    TypeCategory.INT32: _as_integer(32, signed=True),
    TypeCategory.INT64: _as_integer(64, signed=True),
    TypeCategory.UINT8: _as_integer(8, signed=False),
    TypeCategory.UINT16: _as_integer(16, signed=False),
    TypeCategory.UINT32: _as_integer(32, signed=False),
    TypeCategory.UINT64: _as_integer(64, signed=False),
    TypeCategory.FLOAT: _as_float,
    TypeCategory.DOUBLE: _as_double,
}

_missing = set(TypeCategory) - set(VARIANTS)
if _missing:
    raise RuntimeError("No setter variant for type categories: {}".format(sorted(c.value for c in _missing)))


def attribute_setter(attribute: str, original: Callable[[Any, Any], None], convert: Callable[[Any], Any]):
    """
    Wrap a setter so that a successful assignment marks the attribute dirty.
    The value goes through the category conversion first; if either the conversion
    or the original setter raises, the attribute is left clean.
    """

    @functools.wraps(original)
    def setter(instance, value):
        original(instance, convert(value))
        instance.mark_dirty(attribute)

    setter.__tracked_attribute__ = attribute
    return setter


def tracking_setter(attribute: str, original: Callable[[Any, Any], None], category) -> Callable[[Any, Any], None] | None:
    """Returns the tracking setter for the category, or None if the category is not supported"""
    category = TypeCategory.lookup(category)
    if category is None:
        return None
    return attribute_setter(attribute, original, VARIANTS[category])


def is_tracking_setter(setter, attribute: str) -> bool:
    return getattr(setter, "__tracked_attribute__", None) == attribute
