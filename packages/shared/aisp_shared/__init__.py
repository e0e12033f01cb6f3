"""Schemas shared by the AI Service Platform server and deployment watcher."""
