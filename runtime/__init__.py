"""
Runtime package for the call relay server.

This package contains:
- API layer (FastAPI server + routes + session token transport)
- Agents (the conversation relay)
- Stores (sessions, event log)
- Models (Pydantic models for requests and sessions)
"""
