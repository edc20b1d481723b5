"""
Pydantic datamodels used by the call relay runtime.

Split into:
- session_models: Session + Turn
- api_models: HTTP request/response schemas
"""
