import asyncio
import json
import re

from contextlib import contextmanager

from rollgate.execute.execute import RemoteExecutor, Result


@contextmanager
def patch(owner, attr, value):
    """Monkey patch context manager.

    with patch(os, 'open', myopen):
        ...
    """
    old = getattr(owner, attr)
    setattr(owner, attr, value)
    try:
        yield getattr(owner, attr)
    finally:
        setattr(owner, attr, old)


def run(callable, *args, **kwargs):
    """Run an async function to completion and return its result."""
    return asyncio.run(callable(*args, **kwargs))


class FakeExecutor(RemoteExecutor):
    """
    Executor answering every command with handler(host, action, kwargs).

    Calls are recorded in 'calls' as (host, action, kwargs).
    """

    def __init__(self, handler=None):
        self.handler = handler or (lambda host, action, kwargs:
                                   Result(0, "", ""))
        self.calls = []

    def _execute_on_host(self, host, action, user=None, as_sudo=False,
                         **kwargs):
        self.calls.append((host, action, kwargs))
        return self.handler(host, action, kwargs)

    def actions(self):
        return [c[1] for c in self.calls]


PORT_RE = re.compile(r"mongodb://localhost:(\d+)")
EXPR_RE = re.compile(r"JSON\.stringify\((.*)\)\)\"$")


class FakeCluster(FakeExecutor):
    """
    A sharded cluster simulated behind the mongo shell, mlaunch and ps.

    'replica_sets' maps a set name to its ports, the first port being the
    primary. 'mongoses' lists router ports. Every member starts running on
    'version'.
    """

    def __init__(self, replica_sets, mongoses=(), version="4.2.25",
                 fcv="4.2", mlaunch="mlaunch"):
        super().__init__(self._handle)
        self.mlaunch = mlaunch
        self.fcv = fcv
        self.members = {}
        self.primaries = {}
        for rs, ports in replica_sets.items():
            self.primaries[rs] = ports[0]
            for port in ports:
                self.members[port] = {'type': 'mongod', 'set': rs,
                                      'version': version, 'running': True}
        for port in mongoses:
            self.members[port] = {'type': 'mongos', 'set': None,
                                  'version': version, 'running': True}
        self.failing = {}  # (port, expr) -> Result

    def version(self, port):
        return self.members[port]['version']

    def _ps(self):
        lines = ["USER PID STARTED COMMAND"]
        for port, m in sorted(self.members.items()):
            if m['running']:
                lines.append("mongodb {} Sun Oct 18 10:00:00 2026 {} --port "
                             "{}".format(1000 + port % 1000, m['type'], port))
        return Result(0, "\n".join(lines) + "\n", "")

    def _rs_status(self, port):
        rs = self.members[port]['set']
        members = []
        for p, m in sorted(self.members.items()):
            if m['set'] != rs:
                continue
            if not m['running']:
                state = "(not reachable/healthy)"
            elif self.primaries[rs] == p:
                state = "PRIMARY"
            else:
                state = "SECONDARY"
            members.append({'name': "localhost:{}".format(p),
                            'stateStr': state, 'self': p == port})
        return {'set': rs, 'ok': 1, 'members': members}

    def _step_down(self, port):
        rs = self.members[port]['set']
        for p, m in sorted(self.members.items()):
            if m['set'] == rs and p != port and m['running']:
                self.primaries[rs] = p
                return

    def _mongo(self, action):
        port = int(PORT_RE.search(action).group(1))
        expr = EXPR_RE.search(action).group(1)
        if (port, expr) in self.failing:
            return self.failing[(port, expr)]
        member = self.members[port]
        if not member['running']:
            return Result(1, "", "connect failed")
        if expr == "db.version()":
            out = member['version']
        elif expr == "rs.status()":
            out = self._rs_status(port)
        elif expr == "rs.stepDown()":
            self._step_down(port)
            out = {'ok': 1}
        elif "getParameter" in expr:
            out = {'featureCompatibilityVersion': {'version': self.fcv},
                   'ok': 1}
        elif "setFeatureCompatibilityVersion" in expr:
            self.fcv = re.search(r"'([0-9.]+)'", expr).group(1)
            out = {'ok': 1}
        else:
            return Result(1, "", "unknown expression {}".format(expr))
        return Result(0, json.dumps(out) + "\n", "")

    def _mlaunch(self, action, kwargs):
        _, verb, _, port = action.split()
        member = self.members[int(port)]
        if verb == "stop":
            member['running'] = False
        elif verb == "start":
            member['running'] = True
            member['version'] = kwargs['env']['MONGO_VERSION']
        return Result(0, "", "")

    def _handle(self, host, action, kwargs):
        if action.startswith("ps "):
            return self._ps()
        if action.startswith(self.mlaunch + " "):
            return self._mlaunch(action, kwargs)
        if "mongodb://localhost:" in action:
            return self._mongo(action)
        return Result(127, "", "command not found")
