"""
Google Workspace integration (Calendar v3, Tasks v1).
"""

from jarvi.environments.google.adapter import GoogleWorkspaceAdapter

__all__ = ["GoogleWorkspaceAdapter"]
