"""
Generators — produce deployment scripts for a selected package.

Each generator module returns ``GeneratedFile`` instances and never
touches the filesystem.
"""
