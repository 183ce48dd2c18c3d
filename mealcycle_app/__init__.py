"""
Meal Cycle App - Timed glucose sampling protocol engine

Runs the meal-cycle protocol: a baseline reading, a "first bite" start event,
then postprandial readings at prescribed offsets. Mutations are queued durably
and synchronized to a remote document store when connectivity allows, while a
tick-driven scheduler raises one alert per reading window.
"""

__version__ = "0.1.0"
__author__ = "PeekDiet Team"
