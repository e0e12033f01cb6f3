"""
AI Service Platform Deployment Watcher

Polls the platform server for deployments that are still building, asks the
server to refresh them against the hosting provider, and fails builds that
never finish.
"""

__version__ = "0.1.0"
