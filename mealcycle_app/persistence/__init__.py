"""
Local durable storage for the pending-operation list.
"""
