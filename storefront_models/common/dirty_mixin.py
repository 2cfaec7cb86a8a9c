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

import threading


class DirtyTrackingMixin:
    """
    Per-instance record of the attributes assigned since the last clean checkpoint.

    Each single operation on the dirty set holds the instance lock, so a snapshot
    is never torn by a concurrent mark_dirty. Sequences such as "assign, send the
    dirty subset, mark clean" are not atomic: callers sharing an instance across
    threads must serialize them.
    """

    __slots__ = ("_dirty_fields", "_dirty_lock")

    def __new__(cls, *args, **kwargs):
        # Allocated before any __init__, so subclasses may assign tracked attributes early
        instance = super().__new__(cls)
        object.__setattr__(instance, "_dirty_fields", set())
        object.__setattr__(instance, "_dirty_lock", threading.Lock())
        return instance

    def mark_dirty(self, key):
        with self._dirty_lock:
            self._dirty_fields.add(key)

    def mark_clean(self):
        with self._dirty_lock:
            self._dirty_fields.clear()

    def is_dirty(self):
        with self._dirty_lock:
            return len(self._dirty_fields) > 0

    def dirty_attribute_names(self):
        """Returns a copy of the dirty attribute names"""
        with self._dirty_lock:
            return set(self._dirty_fields)

    def __getstate__(self):
        state = dict(getattr(self, "__dict__", {}))
        state["_dirty_fields"] = self.dirty_attribute_names()
        return state

    def __setstate__(self, state):
        state = dict(state)
        object.__setattr__(self, "_dirty_fields", set(state.pop("_dirty_fields", ())))
        object.__setattr__(self, "_dirty_lock", threading.Lock())
        if hasattr(self, "__dict__"):
            self.__dict__.update(state)
