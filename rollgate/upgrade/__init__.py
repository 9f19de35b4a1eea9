"""
Rolling version upgrade of a sharded MongoDB cluster.

Upgrades follow the documented order: config servers first, then each shard
replica set, then the routers, then the feature compatibility version. Within
a replica set secondaries are restarted on the new version one at a time, and
the primary is failed over only when it is the last member left on the old
version.

None of this is driven step by step. build_actions describes every step with
the checks that make it safe, and rollgate.engine.reconcile keeps running
them until there is nothing left to do.
"""
