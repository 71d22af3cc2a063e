"""Pydantic schemas package.

Folder intent:
  common.py    — CamelModel base + HealthResponse (all schemas inherit CamelModel)
  supplier.py  — supplier command payloads, filters and read models
  segment.py   — segment payloads
"""
