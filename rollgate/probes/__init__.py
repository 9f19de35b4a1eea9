"""
Probes gather data about cluster members. They never change a member's
state, which makes them safe to call from checks on every reconciliation
cycle. (Reading a member's version does record it in the version store.)
"""
