# This file makes the 'schemas' directory a Python package.
