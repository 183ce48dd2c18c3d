"""
Meal cycle state machine module.

Owns the meal-cycle lifecycle and its slot-filling rules.
Handles transitions NO_CYCLE → AWAITING_START → COLLECTING → COMPLETED | ABANDONED | CANCELED.
"""
