"""
Services: hashing, file I/O, origins and settings.
"""
