"""Stages of a reorganization run: backup, per-file decision, driver."""
