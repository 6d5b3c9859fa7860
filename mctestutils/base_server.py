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


from mctestutils import log as logmod

log = logmod.getLogger(__name__)


class BaseServer(object):
    "Base server class. Tracks one child process listening on an address."

    address = None

    def start(self):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError

    def check(self):
        "Return C{True} if the server process is still running."
        raise NotImplementedError

    def isStarted(self):
        raise NotImplementedError

    def __del__(self):
        try:
            started = self.isStarted()
        except Exception:
            return
        if started:
            log.warning("server was not stopped before freeing",
                    server=repr(self))
            try:
                self.stop()
            except Exception:
                log.warning("could not stop server in __del__",
                        server=repr(self), exc_info=True)
