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


class InvalidConfig(Exception):
    pass


class TrackingError(Exception):
    """Baseclass for dirty-tracking installation errors."""


class UnsupportedAttributeType(TrackingError):
    """Raised when a persisted attribute's type category has no setter variant
    and the configured policy asks for a hard failure."""

    def __init__(self, model, attribute, category):
        super().__init__(f"Cannot track {model}.{attribute}: unsupported type category {category!r}")
        self.model = model
        self.attribute = attribute
        self.category = category

    def __repr__(self):
        return f"{self.__class__.__name__}: {self.args[0]}"
