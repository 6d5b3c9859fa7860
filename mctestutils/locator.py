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


"""
Find a memcached binary new enough to test against.
"""

import re
import subprocess

from mctestutils import errors
from mctestutils import log as logmod

log = logmod.getLogger(__name__)

VERSION_RE = re.compile(r'^memcached (\d+\.\d+\.\d+)')

DEFAULT_PATHS = (
    '/usr/local/bin/',
    '/opt/local/bin/',
    '/usr/bin/',
    )


def parseVersion(output):
    """
    Return the version tuple announced on the first line of
    C{memcached -h} output, or C{None}.
    """
    lines = output.splitlines()
    if not lines:
        return None
    match = VERSION_RE.match(lines[0].strip())
    if not match:
        return None
    return tuple(int(x) for x in match.group(1).split('.'))


def formatVersion(version):
    return '.'.join(str(x) for x in version)


class BinaryLocator(object):
    """
    Probe a list of directory prefixes for a memcached binary whose version
    is greater than C{minimumVersion}. The first match is cached for the
    life of the locator.

    The empty prefix means "search PATH".
    """

    probeTimeout = 10

    def __init__(self, paths=DEFAULT_PATHS, minimumVersion=(1, 4),
            binaryName='memcached', binaryPath=None, environ=None):
        self.paths = tuple(paths)
        self.minimumVersion = tuple(minimumVersion)
        self.binaryName = binaryName
        self.binaryPath = binaryPath
        self.environ = environ
        self._location = None

    @classmethod
    def fromConfig(cls, cfg):
        return cls(paths=cfg.searchPaths,
                minimumVersion=cfg.minimumVersion,
                binaryName=cfg.binaryName,
                binaryPath=cfg.binaryPath,
                )

    def candidates(self):
        if self.binaryPath:
            yield self.binaryPath
        yield ''
        for path in self.paths:
            yield path

    def getExecutable(self, prefix=None):
        if prefix is None:
            prefix = self.locate()
        return prefix + self.binaryName

    def _probe(self, executable):
        try:
            proc = subprocess.run([executable, '-h'],
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.DEVNULL,
                    env=self.environ,
                    timeout=self.probeTimeout,
                    )
        except (OSError, subprocess.TimeoutExpired) as err:
            log.debug("memcached probe failed", executable=executable,
                    error=str(err))
            return None
        return proc.stdout.decode('utf-8', 'replace')

    def probe(self, prefix):
        """
        Return the version of C{prefix + binaryName}, or C{None} if it can't
        be run or doesn't identify itself as memcached.
        """
        output = self._probe(prefix + self.binaryName)
        if output is None:
            return None
        return parseVersion(output)

    def locate(self):
        if self._location is not None:
            return self._location
        for prefix in self.candidates():
            version = self.probe(prefix)
            if version is None:
                continue
            if version > self.minimumVersion:
                log.info("found memcached", version=formatVersion(version),
                        location=prefix or 'PATH')
                self._location = prefix
                return prefix
            log.debug("memcached too old", version=formatVersion(version),
                    location=prefix or 'PATH')
        raise errors.BinaryNotFound("Unable to find %s %s+ locally"
                % (self.binaryName, formatVersion(self.minimumVersion)))

    def getHelpText(self):
        "Return the full C{-h} output of the located binary."
        return self._probe(self.getExecutable()) or ''

    def reset(self):
        self._location = None


_locators = {}


def getLocator(cfg=None):
    """
    Return the process-wide locator for C{cfg}, creating it on first use.

    Configurations that search for the same binary share one locator, so
    each distinct binary is probed at most once per process.
    """
    if cfg is None:
        loc = BinaryLocator()
    else:
        loc = BinaryLocator.fromConfig(cfg)
    key = (loc.paths, loc.minimumVersion, loc.binaryName, loc.binaryPath)
    return _locators.setdefault(key, loc)


def locateMemcached():
    return getLocator().locate()
