"""API layer: request/response surface for the vehicle grid and editor.

Key rules:

1. No direct SQLAlchemy use - only repo/grid/protocol calls (Session is
   allowed in type hints)
2. Inputs arrive as plain payloads or request models; outputs are Pydantic
   response models only
3. Expected outcomes (not found, conflict, bad input) are responses, not
   exceptions; StoreUnavailable still propagates to the caller
"""
