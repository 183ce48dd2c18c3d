"""
Reading-window scheduler module.

Classifies slots as upcoming, due, missed or completed and raises one alert
per slot entering its due window.
"""
