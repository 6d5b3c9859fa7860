#
# Copyright (c) SAS Institute Inc.
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


import os
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

_saslDir = os.path.join(os.path.dirname(os.path.abspath(__file__)),
        'data', 'sasl')

# Environment variable -> config field
ENVIRONMENT = {
    'MEMCACHED_BINARY': 'binaryName',
    'MEMCACHED_PATH': 'binaryPath',
    'MEMCACHED_EXTRA_ARGS': 'extraArgs',
    'MEMCACHED_SETTLE_TIME': 'settleTime',
    'MEMCACHED_MOCK_SETTLE_TIME': 'mockSettleTime',
    'MEMCACHED_RETRY_ATTEMPTS': 'retryAttempts',
    'MEMCACHED_LOG_FILE': 'logFile',
    'MEMCACHED_SASL_PWDB': 'saslPwdb',
    'SASL_CONF_PATH': 'saslConfPath',
    'MCTESTUTILS_LOG_LEVEL': 'logLevel',
}


class HarnessConfig(BaseModel):
    """
    Settings for locating, launching and stopping test servers.
    """
    model_config = ConfigDict(frozen=True, extra='forbid')

    binaryName: str = 'memcached'
    # Directory searched before PATH and searchPaths
    binaryPath: Optional[str] = None
    searchPaths: List[str] = Field(default_factory=lambda: [
        '/usr/local/bin/',
        '/opt/local/bin/',
        '/usr/bin/',
        ])
    minimumVersion: Tuple[int, ...] = (1, 4)
    # Prepended to the arguments of every launch
    extraArgs: str = ''
    settleTime: float = Field(default=0.1, ge=0)
    mockSettleTime: float = Field(default=0.3, ge=0)
    retryAttempts: int = Field(default=3, ge=1)
    stopTimeout: float = Field(default=5.0, ge=0)
    logFile: Optional[str] = None
    saslPwdb: str = os.path.join(_saslDir, 'sasldb')
    saslConfPath: str = os.path.join(_saslDir, 'memcached.conf')
    logLevel: str = 'WARNING'

    @field_validator('binaryPath')
    @classmethod
    def _dirPrefix(cls, value):
        if value and not value.endswith(os.path.sep):
            value += os.path.sep
        return value

    @field_validator('searchPaths')
    @classmethod
    def _dirPrefixes(cls, value):
        return [x if x.endswith(os.path.sep) else x + os.path.sep
                for x in value]

    @field_validator('logLevel')
    @classmethod
    def _levelName(cls, value):
        value = value.upper()
        if value not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError("unknown log level %r" % (value,))
        return value

    @classmethod
    def fromEnvironment(cls, environ=None, **overrides):
        """
        Build a config from the defaults, the variables listed in
        L{ENVIRONMENT}, and finally C{overrides}.
        """
        if environ is None:
            environ = os.environ
        values = {}
        for key, field in ENVIRONMENT.items():
            if environ.get(key):
                values[field] = environ[key]
        values.update(overrides)
        return cls.model_validate(values)
