"""State/store layer.

The record store is the single owner of the all-time and session best-lap
tables. The policy module holds the pure decisions that gate every
mutation, snapshot write and notification.
"""
