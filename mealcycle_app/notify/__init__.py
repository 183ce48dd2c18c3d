"""
Alert sinks for reading-window notifications.
"""
