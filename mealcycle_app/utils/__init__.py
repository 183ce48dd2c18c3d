"""
Utility functions module.

Clock abstractions and epoch-millisecond helpers shared across the system.

Time Semantics:
- All persisted timestamps are epoch milliseconds (UTC)
- Core logic never reads the wall clock directly; a Clock is injected
- Elapsed time is always measured against the cycle's startTime
"""
