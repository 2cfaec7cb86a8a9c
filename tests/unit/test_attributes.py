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

from storefront_models.common.attributes import PersistedAttribute, persisted_attributes
from storefront_models.common.interceptor import TypeCategory


class Base:
    __persisted_attributes__ = {"note": TypeCategory.OBJECT, "legacy": "int8"}

    title = PersistedAttribute(TypeCategory.OBJECT)
    count = PersistedAttribute(TypeCategory.UINT16, key="item_count")

    @property
    def note(self):
        return "note"


class Derived(Base):
    __persisted_attributes__ = {"legacy": "int64"}

    enabled = PersistedAttribute(TypeCategory.BOOL, default=True)


class Plain:
    value = PersistedAttribute("decimal")


class Test:
    def test_enumeration(self):
        assert persisted_attributes(Base) == {
            "note": TypeCategory.OBJECT,
            "legacy": "int8",
            "title": TypeCategory.OBJECT,
            "count": TypeCategory.UINT16,
        }

    def test_enumeration_follows_subclasses(self):
        attributes = persisted_attributes(Derived)
        assert attributes["legacy"] == "int64"
        assert attributes["enabled"] is TypeCategory.BOOL
        assert "title" in attributes

    def test_enumeration_of_undeclared_class(self):
        assert persisted_attributes(object) == {}

    def test_names_and_keys(self):
        assert Base.title.name == "title"
        assert Base.title.key == "title"
        assert Base.count.key == "item_count"

    def test_defaults(self):
        instance = Derived()
        assert instance.title is None
        assert instance.count == 0
        assert instance.enabled is True
        assert Plain().value is None

    def test_assignment_is_per_instance(self):
        first, second = Base(), Base()
        first.title = "first"
        assert first.title == "first"
        assert second.title is None
        assert first.__dict__ == {"title": "first"}

    def test_setter_returns_a_copy(self):
        calls = []

        def recording_setter(instance, value):
            calls.append(value)

        copy = Base.count.setter(recording_setter)

        assert copy is not Base.count
        assert copy.name == "count"
        assert copy.key == "item_count"
        assert copy.category is TypeCategory.UINT16
        assert copy.fset is recording_setter
        assert Base.count.fset is not recording_setter

    def test_repr(self):
        assert repr(Base.count) == "PersistedAttribute('count', category=uint16)"
        assert repr(Plain.value) == "PersistedAttribute('value', category=decimal)"
