"""Curated content module.

Provides:
- Content and lesson tables
- Transactional store shared by the lesson and progress engines
  (``learnhub.content.store``)
- Content administration (create, publish, inspect, delete)
"""

from .models import Content, Lesson, generate_slug


__all__ = [
    "Content",
    "Lesson",
    "generate_slug",
]
