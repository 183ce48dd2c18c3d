"""
Offline mutation queue module.

Durably queues document mutations and replays them to the remote store,
in order and all-or-nothing, whenever connectivity allows.
"""
