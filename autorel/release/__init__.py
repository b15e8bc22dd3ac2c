"""Commit history to release metadata: bump, notes, changelog, labels."""
