"""
cloudsync operational tools.

Provides:
- schema_cli: Export, plan, sync and reset schemas from the command line
"""
