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

from typing import Dict

from .interceptor import TypeCategory

_unset = object()


def _storing_setter(name):
    def setter(instance, value):
        instance.__dict__[name] = value

    setter.__name__ = f"set_{name}"
    setter.__qualname__ = f"PersistedAttribute.set_{name}"
    return setter


class PersistedAttribute:
    """
    Declares a typed attribute of a model that is persisted remotely, and whose
    assignments are therefore dirty-tracked.

    Values are stored in the instance __dict__; an attribute that was never
    assigned reads as its default (the category default unless given).

        class Product(TrackableModel):
            title = PersistedAttribute(TypeCategory.OBJECT)
            available = PersistedAttribute(TypeCategory.BOOL, key="is_available")
    """

    def __init__(self, category, default=_unset, key=None, fset=None, doc=None):
        self.category = category
        self._default = default
        self.key = key
        self.fset = fset
        self.name = None
        self.__doc__ = doc

    def __set_name__(self, owner, name):
        self.name = name
        if self.key is None:
            self.key = name
        if self.fset is None:
            self.fset = _storing_setter(name)

    @property
    def default(self):
        if self._default is not _unset:
            return self._default
        category = TypeCategory.lookup(self.category)
        return None if category is None else category.default

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return instance.__dict__.get(self.name, self.default)

    def __set__(self, instance, value):
        if self.fset is None:
            raise AttributeError(f"can't set attribute '{self.name}'")
        self.fset(instance, value)

    def setter(self, fset):
        """Returns a copy of this attribute that assigns through fset, like property.setter"""
        attribute = type(self)(self.category, default=self._default, key=self.key, fset=fset, doc=self.__doc__)
        attribute.name = self.name
        return attribute

    def __repr__(self):
        category = TypeCategory.lookup(self.category)
        return "{}({!r}, category={})".format(
            self.__class__.__name__, self.name, category.value if category else self.category
        )


def persisted_attributes(cls) -> Dict[str, object]:
    """
    Enumerate the attributes of a model class that are eligible for dirty-tracking,
    mapped to their declared type category.

    Combines PersistedAttribute declarations with the optional __persisted_attributes__
    mapping of each class, which declares plain properties by name. Subclasses override
    their bases.
    """
    result = {}
    for klass in reversed(cls.__mro__):
        for name, category in klass.__dict__.get("__persisted_attributes__", {}).items():
            result[name] = category
        for name, value in klass.__dict__.items():
            if isinstance(value, PersistedAttribute):
                result[name] = value.category
    return result
