"""
Proposal Review Backend Package

This package contains the FastAPI backend for collaborative RFP proposal
review, including:

- main.py: FastAPI application and router wiring
- permissions.py: the collaborator role -> capability table
- services/: access resolution, answer review, comments, suggestions,
  notifications
- store/: storage-agnostic record store (SQLAlchemy or in-memory)
"""

__version__ = "1.0.0"
