"""
Subsites: multi-tenancy for the CMS content tree.

Many logical subsites share one application and database. Each is reached
through one or more domain patterns and owns its own content tree, access
groups and permissions.
"""

__version__ = "1.0.0"
