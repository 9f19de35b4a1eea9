#!/usr/bin/env python3

import sys
import argparse
import logging

import logzero

from io import StringIO

from logzero import logger

from rollgate.common import *
from rollgate.engine import Journal, reconcile
from rollgate.helpers import auto_confirm, console_confirm, run
from rollgate.store import open_store
from rollgate.upgrade.plan import build_actions, build_topology


# Command-line Argument Parsing
def str2bool(v):
    if v.lower() in true_list:
        return True
    elif v.lower() in false_list:
        return False
    else:
        raise argparse.ArgumentTypeError(
            'Boolean value (yes, no, true, false, y, n, 1, or 0) expected.')


LOG_LEVEL_HELP = """Logging level.
                      [LOG-LEVEL]: notset, debug, info, warning, error, critical
                      Default: info"""
levels = {
    'notset': logging.NOTSET,
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warning': logging.WARNING,
    'error': logging.ERROR,
    'critical': logging.CRITICAL
}


def log_level(v):
    if v.lower() in levels.keys():
        return levels[v.lower()]
    else:
        raise argparse.ArgumentTypeError(
            'Expected one of the following: {}.'.format(
                 ', '.join(levels.keys())))


def port_list(v):
    try:
        return parse_ports(v)
    except ValueError as e:
        raise argparse.ArgumentTypeError(
            'Expected a port range (27020-27028) or comma separated ports. '
            'Reason: {}'.format(e))


def program_args():
    parser = argparse.ArgumentParser(
        description='Roll a sharded MongoDB cluster to a new version, one ' \
                    'health-checked step at a time.')

    parser.add_argument('desired_version', nargs='?',
                        default=DEFAULT_ROLLGATE_DESIRED_VERSION,
                        help='The version every member should end up on. ' \
                        'Default: {}'.format(DEFAULT_ROLLGATE_DESIRED_VERSION))

    parser.add_argument('--mongod-ports', type=port_list,
                        default=parse_ports(DEFAULT_ROLLGATE_MONGOD_PORTS),
                        help='Shard member ports. Default: ' \
                        '{}'.format(DEFAULT_ROLLGATE_MONGOD_PORTS))

    parser.add_argument('--config-server-ports', type=port_list,
                        default=parse_ports(
                            DEFAULT_ROLLGATE_CONFIG_SERVER_PORTS),
                        help='Config server ports. Default: ' \
                        '{}'.format(DEFAULT_ROLLGATE_CONFIG_SERVER_PORTS))

    parser.add_argument('--mongos-ports', type=port_list,
                        default=parse_ports(DEFAULT_ROLLGATE_MONGOS_PORTS),
                        help='Router ports. Default: ' \
                        '{}'.format(DEFAULT_ROLLGATE_MONGOS_PORTS))

    parser.add_argument('--host', default=None,
                        help='Host running the cluster. Commands are run ' \
                        'over SSH when given. Default: this machine')

    parser.add_argument('--ssh-config-file',
                        default=DEFAULT_ROLLGATE_SSH_CONFIG_FILE,
                        help='SSH config used to reach --host. Default: ' \
                        '{}'.format(DEFAULT_ROLLGATE_SSH_CONFIG_FILE))

    parser.add_argument('--mlaunch', default=DEFAULT_ROLLGATE_MLAUNCH,
                        help='mlaunch executable used to stop and start ' \
                        'members. Default: {}'.format(DEFAULT_ROLLGATE_MLAUNCH))

    parser.add_argument('--mongo-shell', default=DEFAULT_ROLLGATE_MONGO_SHELL,
                        help='mongo shell executable. Default: ' \
                        '{}'.format(DEFAULT_ROLLGATE_MONGO_SHELL))

    parser.add_argument('--store-file', default=DEFAULT_ROLLGATE_STORE_FILE,
                        help='File remembering member versions between ' \
                        'cycles and runs. An empty value keeps them in ' \
                        'memory only. Default: ' \
                        '{}'.format(DEFAULT_ROLLGATE_STORE_FILE))

    parser.add_argument('--journal-file', default=None,
                        help='Append every step record to this file as ' \
                        'JSON lines. Default: None')

    parser.add_argument('-i', '--interval', type=float,
                        default=DEFAULT_ROLLGATE_INTERVAL,
                        help='Seconds between reconciliation cycles. ' \
                        'Default: {}'.format(DEFAULT_ROLLGATE_INTERVAL))

    parser.add_argument('--cycles', type=int, default=None,
                        help='Stop after this many cycles. Default: run ' \
                        'forever')

    parser.add_argument('--timeout', type=float, default=None,
                        help='Stop after this many seconds. Default: None')

    parser.add_argument('-y', '--assume-yes', type=str2bool, nargs='?',
                        const=True, default='N',
                        help='Answer yes to every confirmation (failovers, ' \
                        'feature compatibility version). Default: N ' \
                        'Options (case insensitive): y, yes, true, 1, n, no, ' \
                        'false, 0')

    parser.add_argument('-l', '--log-level', type=log_level, nargs='?',
                        const=logging.INFO, default=logging.INFO,
                        help=LOG_LEVEL_HELP)

    parser.add_argument('--log-file', default=None,
                        help='Also write the log to this file. Default: None')

    parser.add_argument('-t', '--test', action='store_true',
                        default=False, help='Runs unit tests and exits.')

    return parser


def parse_args(argv=None, parser=program_args()):
    return parser.parse_args(args=argv)


def init(args):
    logzero.loglevel(args.log_level)
    if args.log_file:
        logzero.logfile(args.log_file, loglevel=args.log_level)
    logger.debug("Initializing...")
    logger.debug("args: %s", args)


def main(args):
    try:
        init(args)
    except Exception:
        logger.error('Unable to initialize script')
        raise

    confirm = auto_confirm(True) if args.assume_yes else console_confirm
    journal = Journal(args.journal_file)

    with open_store(args.store_file) as store:
        def build():
            topology = build_topology(
                store, desired_version=args.desired_version,
                mongod_ports=args.mongod_ports,
                config_server_ports=args.config_server_ports,
                mongos_ports=args.mongos_ports, host=args.host,
                ssh_config_file=args.ssh_config_file if args.host else None,
                mongo_shell=args.mongo_shell, mlaunch=args.mlaunch)
            return build_actions(topology, confirm, journal)

        logger.info("Rolling cluster to %s every %s seconds",
                    args.desired_version, args.interval)
        try:
            completed = run(reconcile, args.timeout, build, args.interval,
                            cycles=args.cycles, journal=journal)
        except KeyboardInterrupt:
            logger.info("Interrupted")
            return 130

    if completed is None:
        logger.error("Timed out after %s seconds", args.timeout)
        return 1

    logger.info("Completed %s reconciliation cycle(s)", completed)
    return 0


# **************
# *  UNIT TESTS !!!!! (use -t to run them)
# ***************
def test():
    print("The 'unittest' module is not available!\nUnable to run tests!")
    return 0


try:
    import unittest

    def test(args, module='__main__'):
        t = unittest.main(argv=['rollgate_test'], module=module, exit=False,
                          verbosity=10)
        return int(not t.result.wasSuccessful())

    class TestRun(unittest.TestCase):

        @classmethod
        def setUpClass(cls):
            sys.stderr = StringIO()
            logger.setLevel(sys.maxsize)

        def test_arg_log_level(self):
            for k, v in levels.items():
                test_args = parse_args(['-l', k])
                self.assertEqual(test_args.log_level, v)

            test_args = parse_args(['-l'])
            self.assertEqual(test_args.log_level, logging.INFO,
                             msg='Invalid const level')
            test_args = parse_args([])
            self.assertEqual(test_args.log_level, logging.INFO,
                             msg='Invalid default level')

        def test_port_ranges(self):
            test_args = parse_args(['--mongod-ports', '27020-27022',
                                    '--mongos-ports', '27017,27018'])
            self.assertEqual(test_args.mongod_ports, [27020, 27021, 27022])
            self.assertEqual(test_args.mongos_ports, [27017, 27018])

        def test_assume_yes(self):
            self.assertFalse(parse_args([]).assume_yes)
            self.assertTrue(parse_args(['-y']).assume_yes)
            self.assertFalse(parse_args(['-y', 'no']).assume_yes)

except ImportError:
    pass

if __name__ == '__main__':
    arguments = parse_args()

    if arguments.test:
        exit_code = test(arguments)
        sys.exit(exit_code)
    else:
        sys.exit(main(arguments))
