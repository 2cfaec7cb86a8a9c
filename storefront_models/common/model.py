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

import inspect
import logging
import threading
from collections.abc import Mapping

from . import config
from .attributes import PersistedAttribute, persisted_attributes
from .dirty_mixin import DirtyTrackingMixin
from .exceptions import UnsupportedAttributeType
from .interceptor import TypeCategory, is_tracking_setter, tracking_setter
from .logging import with_baggage_items

UNTRACKED_SETTER_PREFIX = "_untracked_set_"

_registration_lock = threading.RLock()


def _takes_single_value(fset):
    """True if fset is a plain (instance, value) setter"""
    try:
        parameters = list(inspect.signature(fset).parameters.values())
    except (TypeError, ValueError):
        return False
    if len(parameters) != 2:
        return False
    positional = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    return all(p.kind in positional for p in parameters)


def _unsupported_attribute(model, name, category):
    policy = config.global_config.get("tracking", {}).get("unsupported_attributes", "skip")
    if policy == "raise":
        raise UnsupportedAttributeType(model.__name__, name, category)
    level = logging.WARNING if policy == "warn" else logging.DEBUG
    logging.log(level, "Not tracking %s.%s, unsupported type category %r", model.__name__, name, category)


class TrackableModel(DirtyTrackingMixin):
    """
    Base class for models hydrated from decoded JSON payloads, which record the
    persisted attributes assigned since they were loaded or last marked clean.

    Persisted attributes are declared with PersistedAttribute, or by listing plain
    properties in __persisted_attributes__. Their setters are wrapped the first time
    the class is instantiated, or earlier by calling track_dirty_attributes().
    """

    __persisted_attributes__ = {}

    def __new__(cls, *args, **kwargs):
        # Also reached when unpickling or copying, which bypass __init__
        cls.track_dirty_attributes()
        instance = super().__new__(cls, *args, **kwargs)
        instance._identifier = None
        return instance

    def __init__(self, from_dict=None, **kwargs):
        super().__init__()

        if from_dict is not None:
            self.deserialize(from_dict)

        for k, v in kwargs.items():
            setattr(self, k, v)

        # Hydration is not a user change
        self.mark_clean()

    @property
    def identifier(self):
        return self._identifier

    @classmethod
    def create(cls, payload=None):
        return cls(from_dict=payload)

    @classmethod
    def create_many(cls, payloads, on_each=None):
        """
        Create one model per payload, in order. on_each is called with every model
        once it is hydrated and clean, before the next payload is processed.
        """
        models = []
        with with_baggage_items({"model": cls.__name__}):
            for payload in payloads:
                model = cls.create(payload)
                models.append(model)
                if on_each is not None:
                    on_each(model)
            logging.debug("Created %d %s objects", len(models), cls.__name__)
        return models

    @classmethod
    def create_or_null(cls, payload=None):
        """Like create(), but a null payload means no object rather than an empty one"""
        if payload is None:
            return None
        return cls.create(payload)

    @classmethod
    def deserialize_attribute(cls, name, value):
        return value

    @classmethod
    def serialize_attribute(cls, name, value):
        return value

    def deserialize(self, payload):
        """Modify the model by deserializing a payload into it"""
        if not isinstance(payload, Mapping):
            raise TypeError(f"Cannot hydrate {type(self).__name__} from {type(payload).__name__}")

        if "id" in payload:
            identifier = payload["id"]
            if self._identifier is not None and identifier != self._identifier:
                # The identifier keys __hash__, it must not change once set
                raise ValueError(
                    f"Cannot change {type(self).__name__} identifier {self._identifier!r} to {identifier!r}"
                )
            self._identifier = identifier

        for name, attribute in self._declared_attributes().items():
            if attribute.key not in payload:
                continue
            value = self.deserialize_attribute(name, payload[attribute.key])
            if value is None and TypeCategory.lookup(attribute.category) is not TypeCategory.OBJECT:
                value = attribute.default
            setattr(self, name, value)

    def serialize(self, dirty_only=False):
        """
        Serialize the model to a payload with plain data types. With dirty_only, only
        the attributes changed since the last clean checkpoint are included.
        """
        dirty = self.dirty_attribute_names() if dirty_only else None
        result = {"id": self.identifier}
        for name, attribute in self._declared_attributes().items():
            if dirty is not None and name not in dirty:
                continue
            result[attribute.key] = self.serialize_attribute(name, getattr(self, name))
        return result

    @classmethod
    def _declared_attributes(cls):
        return {
            name: attribute
            for name, attribute in ((name, inspect.getattr_static(cls, name, None)) for name in dir(cls))
            if isinstance(attribute, PersistedAttribute)
        }

    @classmethod
    def track_attribute(cls, name, category):
        """
        Replace the setter of attribute `name` with one that marks it dirty.
        The original setter stays reachable as _untracked_set_<name>.
        Returns whether tracking was installed.
        """
        descriptor = inspect.getattr_static(cls, name, None)
        fset = getattr(descriptor, "fset", None)
        if fset is None or not hasattr(descriptor, "setter"):
            logging.debug("Not tracking %s.%s, it is read-only", cls.__name__, name)
            return False

        if is_tracking_setter(fset, name):
            return False

        if not _takes_single_value(fset):
            logging.debug("Not tracking %s.%s, its setter does not take a single value", cls.__name__, name)
            return False

        setter = tracking_setter(name, fset, category)
        if setter is None:
            _unsupported_attribute(cls, name, category)
            return False

        setattr(cls, UNTRACKED_SETTER_PREFIX + name, fset)
        setattr(cls, name, descriptor.setter(setter))
        return True

    @classmethod
    def track_dirty_attributes(cls):
        """Install dirty-tracking for all persisted attributes of this class, once"""
        if cls.__dict__.get("_dirty_tracking_installed", False):
            return

        with _registration_lock:
            if cls.__dict__.get("_dirty_tracking_installed", False):
                return

            tracked = [
                name
                for name, category in persisted_attributes(cls).items()
                if name and cls.track_attribute(name, category)
            ]
            cls._dirty_tracking_installed = True

        logging.debug("Tracking dirty attributes of %s: %s", cls.__name__, sorted(tracked))

    def __eq__(self, other):
        if self is other:
            return True
        if type(other) is not type(self):
            return NotImplemented
        if self.identifier is None:
            return False
        return other.identifier == self.identifier

    def __hash__(self):
        if self.identifier is None:
            return id(self)
        return hash((type(self).__name__, self.identifier))

    def __repr__(self):
        return f"{type(self).__name__}(identifier={self.identifier!r}, dirty={sorted(self.dirty_attribute_names())})"
