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

import copy
import threading

import pytest

from storefront_models.common.dirty_mixin import DirtyTrackingMixin


class Record(DirtyTrackingMixin):
    __slots__ = ()


class TestDirtyTrackingMixin:
    def setup_method(self, method):
        self.record = Record()

    def test_slots(self):
        """The mixin keeps its state in slots and does not add a __dict__"""
        assert DirtyTrackingMixin.__slots__ == ("_dirty_fields", "_dirty_lock")
        with pytest.raises(AttributeError):
            _ = self.record.__dict__

    def test_starts_clean(self):
        """A new instance has no dirty attributes"""
        assert not self.record.is_dirty()
        assert self.record.dirty_attribute_names() == set()

    def test_mark_dirty_is_idempotent(self):
        """Marking the same attribute twice records it once"""
        self.record.mark_dirty("title")
        self.record.mark_dirty("title")
        assert self.record.dirty_attribute_names() == {"title"}
        assert self.record.is_dirty()

    def test_mark_clean(self):
        """mark_clean empties the dirty set and tracking resumes afterwards"""
        self.record.mark_dirty("title")
        self.record.mark_dirty("price")
        assert self.record.mark_clean() is None
        assert self.record.dirty_attribute_names() == set()
        assert not self.record.is_dirty()

        self.record.mark_dirty("title")
        assert self.record.dirty_attribute_names() == {"title"}

    def test_snapshot_isolation(self):
        """Mutating the returned names does not change the instance"""
        self.record.mark_dirty("title")

        snapshot = self.record.dirty_attribute_names()
        snapshot.add("price")
        snapshot.discard("title")

        assert self.record.dirty_attribute_names() == {"title"}
        assert self.record.is_dirty()

        snapshot.clear()
        assert self.record.is_dirty()

    def test_snapshot_during_concurrent_marking(self):
        """Snapshots taken while another thread marks attributes are consistent"""
        names = [f"attribute_{i}" for i in range(2000)]
        errors = []

        def writer():
            for name in names:
                self.record.mark_dirty(name)

        def reader():
            try:
                for _ in range(200):
                    snapshot = self.record.dirty_attribute_names()
                    assert snapshot <= set(names)
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert self.record.dirty_attribute_names() == set(names)

    def test_copy_keeps_dirty_fields(self):
        """A deep copy has its own dirty set and lock"""
        self.record.mark_dirty("title")

        clone = copy.deepcopy(self.record)
        clone.mark_dirty("price")

        assert clone.dirty_attribute_names() == {"title", "price"}
        assert self.record.dirty_attribute_names() == {"title"}
        assert clone._dirty_lock is not self.record._dirty_lock

    def test_state_exists_before_init(self):
        """The dirty set is usable as soon as the instance is allocated"""
        record = Record.__new__(Record)
        record.mark_dirty("title")
        assert record.dirty_attribute_names() == {"title"}
