"""
Services for Newsdesk.
"""
