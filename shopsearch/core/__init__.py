"""
Core application plumbing: settings, logging, database sessions and errors
"""
