"""
Search and ranking engines
"""
