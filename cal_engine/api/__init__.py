"""
API Package.

REST interface for triggering and inspecting lifecycle passes.
"""
