"""
Proposal Review API Models

Pydantic models for request validation and response serialization.
ORM models live in ``proposal_review.models.db``.
"""
