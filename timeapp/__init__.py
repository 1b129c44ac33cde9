"""TimeApp - time accounting engine for personal time tracking"""

__version__ = "1.0.0"
