"""Lesson management module.

Provides:
- Sequencer keeping lessons at contiguous positions
- Lesson create/update/delete service and admin routes
"""
