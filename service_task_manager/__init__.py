"""Task Manager service: CRUD over tasks with a cache-aside Redis layer."""
