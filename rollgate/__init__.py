"""
rollgate module

This module contains:
 - a health-gated sequencing engine: commands, checks, actions, a controller
   and the reconciliation loop that drives them (engine directory)
 - probes that gather data about cluster members (probes directory)
 - actions that change the state of cluster members (actions directory)
 - the rolling upgrade workflow for a sharded MongoDB cluster (upgrade
   directory)
 - a key-value store remembering what was observed between cycles (store
   directory)
 - a command execution layer, local or over SSH with Python Fabric (execute
   directory)
 - helper functions (helpers.py file) and common defaults (common directory)

The engine runs an action if and only if its pre checks hold. Pre checks are
read-only probes of the system; each must return True before the next is
evaluated. When they all pass, the action's single command runs, changing the
system (restart a member, fail a primary over, ...). Post checks are then
evaluated and reported.

Actions are executed in the order they are declared. Faults and exceptions
raised while running one action do NOT stop the actions after it; they are
logged in the journal and the next reconciliation cycle tries again.

An action whose pre checks do not hold yet is not a failure. It is a step
whose time has not come, and the reconciliation loop keeps rebuilding and
re-running the whole list on a fixed interval until every step is a no-op.

Things to consider when adding or modifying checks and commands:
1. Checks are called every cycle and must not change the system.
2. Commands may be attempted again after a partial attempt in an earlier
   cycle and must tolerate that.
3. Probes and member actions could/may be used outside of the engine, so they
   take plain Members and return plain values.
"""
