"""Pydantic Schemas — request/response shapes at the HTTP boundary and typed action payloads."""
