"""API Schemas — Pydantic request/response models for the REST boundary."""
