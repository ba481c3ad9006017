"""
Read-only HTTP views over one ordering terminal's local collection.
"""
