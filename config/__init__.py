"""
Configuration Package

Process constants (settings.py) and the user settings snapshot (app_settings.py).
"""
