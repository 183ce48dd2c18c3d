"""
Remote document store boundary.

Document-level reads plus an atomic batch write, consumed by the mutation queue.
"""
