"""
castcompat - Chromecast compatibility checks and on-demand transcoding
"""

__version__ = "1.0.0"
