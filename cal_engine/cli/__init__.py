"""
CLI Package.

The calctl command line interface.
"""
