"""
KU Connect
Job board and career services backend for students, employers and professors.

Architecture:
- PostgreSQL (SQLite for local runs): users, jobs, applications, saved jobs,
  preferences, announcements, notifications
- Request pipeline: authenticate -> authorize -> rate limit -> validate,
  declared per route and run before the handler
"""

__version__ = "1.0.0"
