"""
weather_eval: weather activity pipeline and its evaluation harness.
"""

__version__ = "1.0.0"
