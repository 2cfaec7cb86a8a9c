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
import logging
import os

import hiyapyco
import yaml
from pykwalify.core import Core
from pykwalify.errors import SchemaError

from .. import config as models_config
from ..exceptions import InvalidConfig

DEFAULT_CONFIG_FILE = "/etc/storefront-models/config.yaml"
CONFIG_ENV_VAR = "STOREFRONT_MODELS_CONFIG"


def _merge(a, b, path=None):
    "merges dict b into dict a"

    a = copy.deepcopy(a)
    b = copy.deepcopy(b)

    if path is None:
        path = []

    if not isinstance(b, dict):
        if isinstance(a, list) and isinstance(b, list):
            return a + b
        return b

    for key in b:
        if key in a:
            if b[key] is None:
                del a[key]
            elif isinstance(a[key], dict) and isinstance(b[key], dict):
                a[key] = _merge(a[key], b[key], path + [str(key)])
            elif isinstance(a[key], list) and isinstance(b[key], list):
                a[key] = a[key] + b[key]
            else:
                a[key] = b[key]
        elif b[key] is not None:
            a[key] = b[key]
    return a


def merge(*configs):
    new = {}
    for c in configs:
        new = _merge(new, c)
    return new


class ConfigParser:
    def read(self, additional_yaml=None):
        """Read the configuration from YAML, validate it and publish it as the global config"""
        self._read_yaml(additional_yaml=additional_yaml)
        self.config = self._interpolate_env_vars(self.config)
        self._check_schema()
        models_config.global_config = self.config
        return self.config

    def list_config_files(self):
        """List the files that were used by read()"""
        return self.yaml_files

    def dump(self):
        """Dumps the final, merged config created by read()"""
        return hiyapyco.dump(self.config)

    def _read_yaml(self, additional_yaml=None):
        """Reads and merges yaml config files, later files take precedence"""

        self.yaml_files = []

        if os.path.isfile(DEFAULT_CONFIG_FILE):
            self.yaml_files.append(DEFAULT_CONFIG_FILE)

        for f in os.environ.get(CONFIG_ENV_VAR, "").split(os.pathsep):
            if f.strip():
                self.yaml_files.append(f.strip())

        self.yaml_files.extend(additional_yaml or [])

        configs = []
        for c in self.yaml_files:
            with open(c, "r") as f:
                for document in yaml.safe_load_all(f):
                    if document is not None:
                        configs.append(document)
        self.config = merge(*configs)
        logging.debug("Read configuration from %s", self.yaml_files)

    def _check_schema(self):
        """Validates the configuration against the schema"""

        if not self.config:
            return
        if self.config.get("developer", {}).get("disable_schema_check", False):
            return

        this_dir = os.path.dirname(os.path.abspath(__file__))
        schema_check = Core(
            source_data=self.config,
            schema_files=[os.path.join(this_dir, "schema.yaml")],
            extensions=[],
        )

        try:
            schema_check.validate(raise_exception=True)
        except SchemaError as e:
            raise InvalidConfig(
                "Configuration did not validate against schema:\n - {}".format(
                    "\n - ".join(schema_check.validation_errors)
                )
            ) from e

    def _interpolate_env_vars(self, config):
        """Resolves environment variables in the config file"""

        for k, v in config.items() if isinstance(config, dict) else enumerate(config):
            if isinstance(v, (list, dict)):
                config[k] = self._interpolate_env_vars(v)
            elif isinstance(v, str):
                config[k] = os.path.expanduser(os.path.expandvars(v))
        return config
