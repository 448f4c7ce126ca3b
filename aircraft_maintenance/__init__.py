"""
Aircraft Maintenance Tracker

Fleet condition, issue reporting and verifiable maintenance task records.
"""

import importlib.metadata

__version__ = importlib.metadata.version("aircraft-maintenance")
