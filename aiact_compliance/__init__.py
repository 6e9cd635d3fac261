# This file makes the 'aiact_compliance' directory a Python package.

__version__ = "0.1.0"
