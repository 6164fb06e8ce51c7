"""
Hiring pipeline background workers.

This package drains two work queues kept in the shared database: CSV exports
of a posting's applications, and resume parsing followed by fit scoring of
the candidate's applications. Workers coordinate only through the atomic
claim on each queue, so any number of them can run side by side.
"""
