# backend/app/schemas/__init__.py
"""
Pydantic schemas for the Plindo platform.

Request DTOs derive from ``RequestModel`` and response DTOs from
``StandardizedModel``; both speak camelCase on the wire.
"""
