"""
CarePulse

A FastAPI-based patient intake and appointment scheduling application,
with server-rendered registration forms and an admin dashboard.
"""

__version__ = "1.0.0"
