"""
Strix CLI.

The ``strix`` command serves an application and inspects its routes.

Usage:
    strix serve myapp.main:app --port 8000
    strix routes myapp.main:app
    strix version
"""

__cli_name__ = "strix"
