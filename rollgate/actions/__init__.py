"""
Member 'actions' module.

This module contains operations that change the state of a cluster member:
stop and start its process, restart it on another version, make a primary
step down, change the cluster's feature compatibility version.

On their own these functions do no checking. They become safe to run
unattended once wrapped as the Command of a rollgate.engine.Action whose pre
checks establish that the cluster can tolerate the change (see
rollgate.upgrade).
"""
