import logging
import queue
import tempfile
import pytest

from rollgate.execute import execute
from rollgate.execute.execute import *
from test import patch, run


def noop_do_execute(*args, **kwargs):
    args[0].put(Result(return_code=0, stdout='devin\n', stderr=''))


class InlineProcess(object):
    """Runs the target in this process so patched targets are used."""

    def __init__(self, target=None, args=(), kwargs=None):
        self._target = target
        self._args = args
        self._kwargs = kwargs or {}
        self.terminated = False

    def start(self):
        self._target(*self._args, **self._kwargs)

    def join(self, timeout=None):
        pass

    def is_alive(self):
        return False

    def terminate(self):
        self.terminated = True


class HungProcess(InlineProcess):
    def start(self):
        pass

    def is_alive(self):
        return True


def test_verify_identity_file():

    with pytest.raises(ValueError):
        FabricExecutor._is_readable_file(None, "test")

    with pytest.raises(ValueError):
        FabricExecutor._is_readable_file(['/tmp/test/'], "test")

    with pytest.raises(OSError):
        FabricExecutor._is_readable_file(str(tempfile.gettempdir()), "test")

    with tempfile.NamedTemporaryFile() as f:
        FabricExecutor._is_readable_file(f.name, "test")


def test_collect_connect_kwargs():
    assert FabricExecutor._collect_connect_kwargs(None) is None
    with tempfile.NamedTemporaryFile() as f:
        assert FabricExecutor._collect_connect_kwargs(f.name) == {
            'key_filename': f.name}


def test_simple_fabric_test():
    executor = FabricExecutor()
    with tempfile.NamedTemporaryFile(mode='w') as f:
        f.write("")
        f.flush()
        with patch(execute, 'Process', InlineProcess), \
             patch(execute, 'Queue', queue.Queue), \
             patch(FabricExecutor, '_multiprocess_execute_on_host',
                   noop_do_execute):
            rtn = executor.execute('Node1',
                                   'echo "devin"',
                                   user='ubuntu',
                                   identity_file=f.name)
            assert rtn.return_code == 0
            assert rtn.stdout == 'devin\n'


def test_fabric_timeout_raises():
    executor = FabricExecutor()
    with patch(execute, 'Process', HungProcess), \
         patch(execute, 'Queue', queue.Queue):
        with pytest.raises(ExecutionError):
            executor.execute('Node1', 'sleep 60', timeout=0)


def test_fabric_missing_result_raises():
    def no_result(*args, **kwargs):
        pass

    executor = FabricExecutor()
    with patch(execute, 'Process', InlineProcess), \
         patch(execute, 'Queue', queue.Queue), \
         patch(FabricExecutor, '_multiprocess_execute_on_host', no_result):
        with pytest.raises(ExecutionError):
            executor.execute('Node1', 'true')


def test_ssh_config():
    ssh_config = """Host Node1
User ubuntu
IdentityFile /tmp/QA-Pool.pem"""
    with tempfile.NamedTemporaryFile(mode='w') as f:
        f.write(ssh_config)
        f.flush()

        executor = FabricExecutor(ssh_config_file=f.name)
        with patch(execute, 'Process', InlineProcess), \
             patch(execute, 'Queue', queue.Queue), \
             patch(FabricExecutor, '_multiprocess_execute_on_host',
                   noop_do_execute):
            rtn = executor.execute('Node1', 'echo "devin"')
            assert rtn.return_code == 0


def test_local_executor(caplog):
    caplog.set_level(logging.DEBUG)
    executor = LocalExecutor()
    rtn = executor.execute(LOCALHOST, 'echo "devin"')
    assert rtn == Result(0, 'devin\n', '')

    rtn = executor.execute(LOCALHOST, 'exit 3')
    assert rtn.return_code == 3


def test_local_executor_env():
    executor = LocalExecutor()
    rtn = executor.execute(LOCALHOST, 'echo "$MONGO_VERSION"',
                           env={'MONGO_VERSION': '4.4.29'})
    assert rtn.stdout.strip() == '4.4.29'


def test_local_executor_timeout():
    executor = LocalExecutor()
    with pytest.raises(ExecutionError):
        executor.execute(LOCALHOST, 'sleep 5', timeout=0.1)


def test_execute_async():
    executor = LocalExecutor()
    rtn = run(executor.execute_async, LOCALHOST, 'echo "corin"')
    assert rtn.stdout == 'corin\n'


def test_executor_for():
    assert isinstance(executor_for(None), LocalExecutor)
    assert isinstance(executor_for('localhost'), LocalExecutor)
    with tempfile.NamedTemporaryFile(mode='w') as f:
        assert isinstance(executor_for('Node1', f.name), FabricExecutor)
